"""Immutable value records for a Grafana dashboard definition.

Every record is a frozen dataclass that is constructed once and serialised once
with ``to_dict()``. Panel ids, query refIds and grid positions are not stored on
the records; they are derived from order when the dashboard is serialised, so
the same records always produce the same JSON.
"""
import json
from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

GRID_WIDTH = 24

DS_REF = {"type": "prometheus", "uid": "$PROMETHEUS_DS"}


@dataclass(frozen=True)
class Query:
    """One Prometheus target: an expression plus the legend naming its series."""

    expr: str
    legend_format: str = ""

    def to_dict(self, ref_id="A"):
        return {"refId": ref_id, "datasource": dict(DS_REF), "expr": self.expr,
                "legendFormat": self.legend_format}


@dataclass(frozen=True)
class Legend:
    show: bool = True
    hide_zero: bool = False

    def to_dict(self):
        return {"showLegend": self.show, "displayMode": "list",
                "placement": "bottom", "calcs": []}


@dataclass(frozen=True)
class Panel:
    """A timeseries panel.

    ``min`` and ``max`` are axis hints only. Series are allowed to run past them.
    """

    title: str
    queries: Tuple[Query, ...]
    description: Optional[str] = None
    unit: str = "short"
    min: Optional[float] = None
    max: Optional[float] = None
    stack: bool = False
    decimals: Optional[int] = None
    legend: Legend = field(default_factory=Legend)

    def to_dict(self, panel_id, grid_pos):
        custom = {"lineWidth": 1, "fillOpacity": 10, "gradientMode": "none",
                  "drawStyle": "line", "showPoints": "never", "spanNulls": True}
        if self.stack:
            custom["stacking"] = {"mode": "normal", "group": "A"}
            custom["fillOpacity"] = 60
        defaults = {"unit": self.unit, "custom": custom}
        for key in ("min", "max", "decimals"):
            value = getattr(self, key)
            if value is not None:
                defaults[key] = value
        tooltip = {"mode": "multi", "sort": "desc"}
        if self.legend.hide_zero:
            tooltip["hideZeros"] = True
        p = {"id": panel_id, "title": self.title, "type": "timeseries",
             "datasource": dict(DS_REF), "gridPos": grid_pos,
             "fieldConfig": {"defaults": defaults, "overrides": []},
             "options": {"legend": self.legend.to_dict(), "tooltip": tooltip},
             "targets": [q.to_dict(_ref_id(i)) for i, q in enumerate(self.queries)]}
        if self.description is not None:
            p["description"] = self.description
        return p


@dataclass(frozen=True)
class Row:
    title: str

    def to_dict(self, panel_id, grid_pos):
        return {"type": "row", "title": self.title, "collapsed": False,
                "gridPos": grid_pos, "id": panel_id, "panels": []}


@dataclass(frozen=True)
class Placement:
    """A panel (or row) plus its layout hints in grid units."""

    panel: Union[Panel, Row]
    width: int = 12
    height: int = 8


@dataclass(frozen=True)
class TemplateVariable:
    name: str
    query: str
    type: str = "datasource"
    # 0 = visible, 1 = label hidden, 2 = variable hidden
    hide: int = 1

    def to_dict(self):
        return {"name": self.name, "type": self.type, "query": self.query,
                "current": {}, "hide": self.hide, "includeAll": False,
                "multi": False, "options": [], "refresh": 1, "regex": "",
                "skipUrlSync": False}


@dataclass(frozen=True)
class Dashboard:
    title: str
    uid: str
    tags: Tuple[str, ...]
    templates: Tuple[TemplateVariable, ...]
    placements: Tuple[Placement, ...]
    editable: bool = True
    description: str = ""
    refresh: str = "1m"
    time_from: str = "now-6h"

    @property
    def panels(self):
        return [p.panel for p in self.placements]

    @property
    def rows(self):
        return [p for p in self.panels if isinstance(p, Row)]

    @property
    def data_panels(self):
        return [p for p in self.panels if isinstance(p, Panel)]

    def to_dict(self):
        panels = [pl.panel.to_dict(i + 1, gp)
                  for i, (pl, gp) in enumerate(zip(self.placements, layout(self.placements)))]
        return {
            "__inputs": [], "__requires": [
                {"type": "grafana", "id": "grafana", "name": "Grafana", "version": "9.0.0"},
                {"type": "datasource", "id": "prometheus", "name": "Prometheus", "version": "1.0.0"}],
            "id": None, "uid": self.uid,
            "title": self.title, "description": self.description,
            "tags": list(self.tags),
            "timezone": "browser", "editable": self.editable,
            "graphTooltip": 1, "fiscalYearStartMonth": 0, "liveNow": False,
            "refresh": self.refresh, "schemaVersion": 38, "version": 1,
            "time": {"from": self.time_from, "to": "now"}, "timepicker": {},
            "annotations": {"list": [{"builtIn": 1, "datasource": {"type": "grafana", "uid": "-- Grafana --"},
                "enable": True, "hide": True, "iconColor": "rgba(0, 211, 255, 1)",
                "name": "Annotations & Alerts", "type": "dashboard"}]},
            "templating": {"list": [t.to_dict() for t in self.templates]},
            "panels": panels,
        }

    def to_json(self):
        return json.dumps(self.to_dict(), indent=4, sort_keys=True) + "\n"


def _ref_id(i):
    return chr(65 + i % 26)


def layout(placements):
    """Yield a gridPos for each placement, flowing left to right.

    Rows always take a full line of height 1. Panels wrap onto a new line when
    the next one would overflow the grid width.
    """
    x = y = line_h = 0
    for pl in placements:
        if isinstance(pl.panel, Row):
            y += line_h
            yield {"h": 1, "w": GRID_WIDTH, "x": 0, "y": y}
            y += 1
            x = line_h = 0
            continue
        w = min(pl.width, GRID_WIDTH)
        if x + w > GRID_WIDTH:
            y += line_h
            x = line_h = 0
        yield {"h": pl.height, "w": w, "x": x, "y": y}
        x += w
        line_h = max(line_h, pl.height)
