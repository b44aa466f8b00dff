"""PromQL aggregation expressions for the cluster dashboard.

Upstream label contract: kube-state-metrics provides ``kube_node_labels``,
``kube_pod_*`` and ``kube_node_status_allocatable``; node-exporter provides
``node_cpu_seconds_total`` and ``node_memory_*`` relabelled with
``kubernetes_node``. If those labels are renamed the expressions evaluate to
empty results, not errors.
"""

# ── Label shorthands ──
NODEPOOL_LABEL = "label_cloud_google_com_gke_nodepool"
USER_COMPONENT = "singleuser-server"
PLACEHOLDER_COMPONENTS = "user-placeholder|node-placeholder"


def _pool_map():
    return (
        "group(\n"
        "  kube_node_labels\n"
        f") by (node, {NODEPOOL_LABEL})"
    )


def _indent(text, n=2):
    pad = " " * n
    return "\n".join(pad + line if line else line for line in text.splitlines())


def node_count():
    return f"""# sum up all nodes by nodepool
sum(
  # kube_node_labels carries the node kube-state-metrics itself runs on
  # (kubernetes_node). When a nodepool is rotated the same node can show up
  # with two different kubernetes_node values. group() drops every label
  # except the two we care about so each node is counted once.
{_indent(_pool_map())}
) by ({NODEPOOL_LABEL})
"""


def running_users():
    return f"""# Sum up all running user pods by namespace
sum(
  # Grab a list of all running pods.
  # group() always returns 1 per unique label set, so a pod is counted
  # as present, not by how many times it restarted.
  group(
    kube_pod_status_phase{{phase="Running"}}
  ) by (pod)
  # Return only pods with the component={USER_COMPONENT} label
  * on (pod) group_right() group(
    kube_pod_labels{{label_component="{USER_COMPONENT}"}}
  ) by (namespace, pod)
) by (namespace)
"""


def _committed_pods():
    return f"""# Ignore containers from pods that aren't currently running or scheduled
# FIXME: This isn't the best metric here, evaluate what is.
and on (pod) kube_pod_status_scheduled{{condition="true"}}
# Ignore user and node placeholder pods
and on (pod) kube_pod_labels{{label_component!~"{PLACEHOLDER_COMPONENTS}"}}"""


def commitment_ratio(resource):
    """Share of allocatable ``resource`` guaranteed to pods by requests, per nodepool."""
    return f"""sum(
  # Get individual container {resource} requests
  kube_pod_container_resource_requests{{resource="{resource}"}}
  # Add node pool name as label
  * on (node) group_left({NODEPOOL_LABEL})
  # group aggregator ensures that node names are unique per pool
{_indent(_pool_map())}
{_indent(_committed_pods())}
) by ({NODEPOOL_LABEL})
/
sum(
  # Total allocatable {resource} on a node
  kube_node_status_allocatable{{resource="{resource}"}}
  # Add node pool name as label
  * on (node) group_left({NODEPOOL_LABEL})
  # group aggregator ensures that node names are unique per pool
{_indent(_pool_map())}
) by ({NODEPOOL_LABEL})
"""


def node_commitment_ratio(resource):
    """Share of allocatable ``resource`` guaranteed to pods by requests, per node."""
    return f"""sum(
  # Get individual container {resource} requests
  kube_pod_container_resource_requests{{resource="{resource}"}}
{_indent(_committed_pods())}
) by (node)
/
sum(
  # Total allocatable {resource} on a node
  kube_node_status_allocatable{{resource="{resource}"}}
) by (node)
"""


def node_cpu_utilization():
    return """sum(
  # Rate of change of total CPU time that is not idle
  rate(node_cpu_seconds_total{mode!="idle"}[5m])
) by (kubernetes_node)
/
sum(
  # Allocatable CPUs per node, copied onto the node-exporter label
  label_replace(
    kube_node_status_allocatable{resource="cpu"},
    "kubernetes_node", "$1", "node", "(.*)"
  )
) by (kubernetes_node)
"""


def node_memory_utilization():
    return """1 - (
  sum(
    # Memory that can be allocated to processes when they need it
    node_memory_MemFree_bytes + # Unused bytes
    node_memory_Cached_bytes + # Shared memory + temporary disk cache
    node_memory_Buffers_bytes # Very temporary buffer memory cache for disk i/o
  ) by (kubernetes_node)
  /
  sum(node_memory_MemTotal_bytes) by (kubernetes_node)
)
"""


def non_running_pods():
    return """sum(
  kube_pod_status_phase{phase!="Running"}
) by (phase)
"""
