"""
Selector and filter models for graph API reads and writes

A selector maps field names to True (include) or to a nested selector.
A filter maps field names to {operator: value} predicates, or combines
filters with "and"/"or". Operators are passed through verbatim; the remote
API decides what is legal.
"""

from typing import Any, Dict, List, Union

Selector = Dict[str, Union[bool, "Selector"]]
FilterExpression = Dict[str, Any]

LOGICAL_OPERATORS = ("and", "or")


def merge_selectors(*selectors: Selector) -> Selector:
    """
    Merge selectors left to right.

    Later selectors win per leaf; when both sides hold a nested selector for
    the same field the two are merged recursively.
    """
    merged: Selector = {}
    for selector in selectors:
        if not selector:
            continue
        for field_name, value in selector.items():
            current = merged.get(field_name)
            if isinstance(value, dict) and isinstance(current, dict):
                merged[field_name] = merge_selectors(current, value)
            elif isinstance(value, dict):
                merged[field_name] = merge_selectors(value)
            else:
                merged[field_name] = bool(value)
    return merged


def selected_fields(selector: Selector) -> List[str]:
    """Top-level field names the selector includes"""
    return [name for name, value in selector.items() if value]


def render_selection(selector: Selector, indent: int = 2, depth: int = 1) -> str:
    """Render a selector as a GraphQL selection set"""
    pad = " " * (indent * depth)
    lines = ["{"]
    for field_name, value in selector.items():
        if isinstance(value, dict):
            if not value:
                continue
            lines.append(f"{pad}{field_name} {render_selection(value, indent, depth + 1)}")
        elif value:
            lines.append(f"{pad}{field_name}")
    lines.append(" " * (indent * (depth - 1)) + "}")
    return "\n".join(lines)


# === FILTER CONSTRUCTION ===

def op(operator: str, value: Any) -> Dict[str, Any]:
    """Single operator predicate; operator names are not checked locally"""
    return {operator: value}


def eq(value: Any) -> Dict[str, Any]:
    return op("eq", value)


def ne(value: Any) -> Dict[str, Any]:
    return op("ne", value)


def gt(value: Any) -> Dict[str, Any]:
    return op("gt", value)


def gte(value: Any) -> Dict[str, Any]:
    return op("gte", value)


def lt(value: Any) -> Dict[str, Any]:
    return op("lt", value)


def lte(value: Any) -> Dict[str, Any]:
    return op("lte", value)


def in_(values) -> Dict[str, Any]:
    return op("in", list(values))


def contains(value: Any) -> Dict[str, Any]:
    return op("contains", value)


def and_(*expressions: FilterExpression) -> FilterExpression:
    """Explicit conjunction; empty expressions are dropped"""
    parts = [e for e in expressions if e]
    if len(parts) == 1:
        return parts[0]
    return {"and": parts}


def or_(*expressions: FilterExpression) -> FilterExpression:
    """Explicit disjunction; empty expressions are dropped"""
    parts = [e for e in expressions if e]
    if len(parts) == 1:
        return parts[0]
    return {"or": parts}


def where(**field_predicates: Any) -> FilterExpression:
    """
    Build a filter from keyword predicates.

    Bare values become equality predicates. Several fields combine with a
    logical "and"; a single field is returned unwrapped.

        where(status="OPEN", quantity=gte(1))
        -> {"and": [{"status": {"eq": "OPEN"}}, {"quantity": {"gte": 1}}]}
    """
    predicates = []
    for field_name, predicate in field_predicates.items():
        if not isinstance(predicate, dict):
            predicate = eq(predicate)
        predicates.append({field_name: predicate})
    if not predicates:
        return {}
    return and_(*predicates)


def by_id(value: Any, id_field: str = "id") -> FilterExpression:
    """Equality filter on an entity identifier"""
    return {id_field: eq(value)}
