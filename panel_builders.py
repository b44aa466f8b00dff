#!/usr/bin/env python3
"""Shared Grafana panel builder functions for the cluster dashboards.

Builders return the immutable records from ``models``; nothing here touches
JSON directly. Ids, refIds and grid positions are filled in when the
dashboard is serialised.
"""
from models import (Dashboard, Legend, Panel, Placement, Query, Row,
                    TemplateVariable, GRID_WIDTH)

# ── Datasource: template variable picked at import time ──
DS_NAME = "PROMETHEUS_DS"

# ── Dashboard identity ──
DASHBOARD_UID = "hub-cluster-info"
DASHBOARD_TAGS = ("jupyterhub", "kubernetes")

# Units Grafana understands that these dashboards use
KNOWN_UNITS = frozenset({"short", "none", "percent", "percentunit", "bytes", "decbytes"})

# ── Standard panel size: two panels per grid line ──
STD_W = 12
STD_H = 8

# ── Legends ──
LEGEND_B = Legend()
LEGEND_NZ = Legend(hide_zero=True)
LEGEND_OFF = Legend(show=False)


def tgt(expr, legend):
    return Query(expr=expr, legend_format=legend)


def row(title):
    return Placement(Row(title), width=GRID_WIDTH, height=1)


def ts(title, targets, desc=None, unit="short", min=None, max=None,
       stack=False, decimals=None, legend=LEGEND_B, w=STD_W, h=STD_H):
    """Timeseries panel placed at the standard size unless told otherwise."""
    panel = Panel(title=title, queries=tuple(targets), description=desc,
                  unit=unit, min=min, max=max, stack=stack,
                  decimals=decimals, legend=legend)
    return Placement(panel, width=w, height=h)


def percent_ts(title, targets, desc=None, legend=LEGEND_OFF):
    # max=1 can be exceeded in exceptional circumstances like evicted pods,
    # but full is still full. If it's off the chart it doesn't matter by how much.
    return ts(title, targets, desc=desc, unit="percentunit", min=0, max=1,
              legend=legend)


# ── DASHBOARD WRAPPER ──

def wrap_dashboard(uid, title, tags, panels, templating, description="",
                   editable=True, time_from="now-6h", refresh="1m"):
    return Dashboard(title=title, uid=uid, tags=tuple(tags),
                     templates=tuple(templating), placements=tuple(panels),
                     editable=editable, description=description,
                     refresh=refresh, time_from=time_from)


# ── STANDARD TEMPLATE VARIABLES ──

def standard_templating(extra_vars=None):
    vars_list = [TemplateVariable(name=DS_NAME, query="prometheus", type="datasource", hide=1)]
    if extra_vars:
        vars_list.extend(extra_vars)
    return vars_list
