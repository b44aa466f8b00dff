"""Structural checks for generated dashboards.

These catch mistakes that Grafana would silently render as empty or mislabelled
graphs: a legend naming a label the query aggregates away, a ratio whose two
sides are joined on different keys, axis bounds the wrong way round.
"""
import logging
import re

from models import Panel
from panel_builders import KNOWN_UNITS

log = logging.getLogger(__name__)

_QUOTES = "\"'`"
_GROUP = re.compile(r"\b(by|without)\s*\(([^)]*)\)")
_JOIN = re.compile(r"\bon\s*\(([^)]*)\)\s*group_left\b")
_LEGEND = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


class DashboardValidationError(ValueError):
    def __init__(self, problems):
        self.problems = list(problems)
        super().__init__("dashboard failed validation:\n" +
                         "\n".join(f"- {p}" for p in self.problems))


def _mask(expr):
    """Blank out ``#`` comments and string contents, keeping every offset.

    One left-to-right pass, so a ``#`` inside quotes stays part of the string
    and a quote inside a comment stays part of the comment. Backtick strings
    have no escapes.
    """
    out, i, n = list(expr), 0, len(expr)
    while i < n:
        ch = expr[i]
        if ch in _QUOTES:
            j = i + 1
            while j < n and expr[j] != ch:
                j += 2 if expr[j] == "\\" and ch != "`" else 1
            for k in range(i + 1, min(j, n)):
                out[k] = " "
            i = j + 1
        elif ch == "#":
            while i < n and expr[i] != "\n":
                out[i] = " "
                i += 1
        else:
            i += 1
    return "".join(out)


def _labels(group):
    return frozenset(l.strip() for l in group.split(",") if l.strip())


def _depths(text):
    depths, d = [], 0
    for ch in text:
        depths.append(d)
        if ch == "(":
            d += 1
        elif ch == ")":
            d -= 1
    return depths


def legend_labels(fmt):
    return frozenset(_LEGEND.findall(fmt))


def grouping_clause(expr):
    """The outermost ``by (...)`` or ``without (...)`` clause as ``(kind, labels)``.

    Among clauses at the lowest nesting depth the last one wins, since for
    binary operations both sides are expected to agree. Returns None when the
    expression has no grouping clause at all.
    """
    text = _mask(expr)
    depths = _depths(text)
    best = None
    for m in _GROUP.finditer(text):
        d = depths[m.start()]
        if best is None or d <= best[0]:
            best = (d, m.group(1), m.group(2))
    return None if best is None else (best[1], _labels(best[2]))


def grouping_labels(expr):
    """Labels kept by the outermost ``by (...)`` clause of ``expr``.

    None when there is no grouping clause, or when it is a ``without``
    clause, whose kept labels depend on the series themselves.
    """
    clause = grouping_clause(expr)
    if clause is None or clause[0] != "by":
        return None
    return clause[1]


def split_ratio(expr):
    """Split on the top-level ``/``; None when the expression is not a ratio.

    Both halves are returned as written, comments and strings included.
    """
    text = _mask(expr)
    for i, d in enumerate(_depths(text)):
        if d == 0 and text[i] == "/":
            return expr[:i].strip(), expr[i + 1:].strip()
    return None


def join_labels(expr):
    return [_labels(g) for g in _JOIN.findall(_mask(expr))]


def _check_query(title, q):
    problems = []
    wanted = legend_labels(q.legend_format)
    clause = grouping_clause(q.expr)
    if wanted and clause is None:
        problems.append(f"{title}: legend {q.legend_format!r} names labels "
                        f"but the query has no grouping clause")
    elif clause is not None:
        kind, labels = clause
        lost = wanted - labels if kind == "by" else wanted & labels
        if lost:
            problems.append(f"{title}: legend {q.legend_format!r} uses "
                            f"{', '.join(sorted(lost))} which the query groups away")

    parts = split_ratio(q.expr)
    if parts:
        num, den = parts
        if join_labels(num) != join_labels(den):
            problems.append(f"{title}: numerator joins on {_fmt(join_labels(num))} "
                            f"but denominator joins on {_fmt(join_labels(den))}")
        cn, cd = grouping_clause(num), grouping_clause(den)
        if cn != cd:
            problems.append(f"{title}: numerator grouped {_fmt_clause(cn)} "
                            f"but denominator {_fmt_clause(cd)}")
    return problems


def _fmt(groups):
    return "; ".join("(" + ", ".join(sorted(g)) + ")" if g else "()" for g in groups) or "nothing"


def _fmt_clause(clause):
    if clause is None:
        return "by ()"
    return f"{clause[0]} {_fmt([clause[1]])}"


def check_dashboard(dashboard):
    """Return a list of problems found in ``dashboard``; empty means valid."""
    problems = []

    names = [t.name for t in dashboard.templates]
    for name in sorted({n for n in names if names.count(n) > 1}):
        problems.append(f"template variable {name!r} defined more than once")

    for panel in dashboard.panels:
        if not isinstance(panel, Panel):
            continue
        if panel.unit not in KNOWN_UNITS:
            problems.append(f"{panel.title}: unknown unit {panel.unit!r}")
        if panel.min is not None and panel.max is not None and panel.min > panel.max:
            problems.append(f"{panel.title}: min {panel.min} is above max {panel.max}")
        if not panel.queries:
            problems.append(f"{panel.title}: no queries")
        for q in panel.queries:
            problems.extend(_check_query(panel.title, q))

    for p in problems:
        log.debug("%s: %s", dashboard.uid, p)
    return problems


def validate(dashboard):
    problems = check_dashboard(dashboard)
    if problems:
        raise DashboardValidationError(problems)
    return dashboard
