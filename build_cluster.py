#!/usr/bin/env python3
"""Dashboard: Cluster Information.
Cluster-wide user counts, nodepool commitment and size, stuck pods,
then per-node utilization and commitment.
"""
import sys
from panel_builders import *
import promql


def build_cluster():
    panels = []

    # ════════════════════════════════════════════════════════
    # ROW: Cluster Stats
    # ════════════════════════════════════════════════════════
    panels.append(row("Cluster Stats"))

    panels.append(ts(
        "Running Users",
        [tgt(promql.running_users(), "{{namespace}}")],
        desc="Count of running users, grouped by namespace",
        decimals=0, min=0, stack=True, legend=LEGEND_NZ))

    panels.append(percent_ts(
        "Memory commitment %",
        [tgt(promql.commitment_ratio("memory"), "{{" + promql.NODEPOOL_LABEL + "}}")],
        desc="% of memory in the cluster currently committed to pods.\n\n"
             "Higher is better, since it means the nodes are well packed. "
             "This is requests (guaranteed), not actual usage.",
        legend=LEGEND_B))

    panels.append(percent_ts(
        "CPU commitment %",
        [tgt(promql.commitment_ratio("cpu"), "{{" + promql.NODEPOOL_LABEL + "}}")],
        desc="% of CPU in the cluster currently committed to pods.\n\n"
             "Higher is better, since it means the nodes are well packed. "
             "This is requests (guaranteed), not actual usage.",
        legend=LEGEND_B))

    panels.append(ts(
        "Node Count",
        [tgt(promql.node_count(), "{{" + promql.NODEPOOL_LABEL + "}}")],
        desc="Number of nodes in each nodepool in this cluster",
        decimals=0, min=0))

    panels.append(ts(
        "Non Running Pods",
        [tgt(promql.non_running_pods(), "{{phase}}")],
        desc="Pods in a non-running state in the cluster.\n\n"
             "Pods stuck in non-running states often indicate an error condition.",
        decimals=0, min=0, stack=True, legend=LEGEND_NZ))

    # ════════════════════════════════════════════════════════
    # ROW: Node Stats
    # ════════════════════════════════════════════════════════
    panels.append(row("Node Stats"))

    panels.append(percent_ts(
        "Node CPU Utilization %",
        [tgt(promql.node_cpu_utilization(), "{{kubernetes_node}}")],
        desc="% of available CPUs currently in use"))

    panels.append(percent_ts(
        "Node Memory Utilization %",
        [tgt(promql.node_memory_utilization(), "{{kubernetes_node}}")],
        desc="% of available Memory currently in use"))

    panels.append(percent_ts(
        "Node CPU Commit %",
        [tgt(promql.node_commitment_ratio("cpu"), "{{node}}")],
        desc="% of each node guaranteed to pods on it"))

    panels.append(percent_ts(
        "Node Memory Commit %",
        [tgt(promql.node_commitment_ratio("memory"), "{{node}}")],
        desc="% of each node guaranteed to pods on it"))

    return wrap_dashboard(
        uid=DASHBOARD_UID,
        title="Cluster Information",
        description="Users, nodepool commitment and node usage for the whole cluster.",
        tags=DASHBOARD_TAGS,
        panels=panels,
        templating=standard_templating(),
        editable=True,
    )


if __name__ == "__main__":
    out = sys.argv[1] if len(sys.argv) > 1 else "dashboards/cluster.json"
    d = build_cluster()
    with open(out, "w") as f:
        f.write(d.to_json())
    print(f"Generated {out}: {len(d.panels)} panels")
