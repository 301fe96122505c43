"""
In-memory graph API used by the harness's own tests

Understands the documents EntityNode sends: one root field per operation,
arguments passed as variables, nested selection sets. Business rules are
enforced here, never in the harness.
"""

import logging
import re
import uuid
from typing import Any, Dict, List, Optional, Tuple

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

SCHEMA: Dict[str, Dict[str, Any]] = {
    "Customer": {"fields": ["id", "name", "email"], "refs": {}, "required": ["name", "email"]},
    "Item": {"fields": ["id", "name", "sku", "price"], "refs": {}, "required": ["name", "sku"]},
    "Site": {"fields": ["id", "name", "code"], "refs": {}, "required": ["name", "code"]},
    "SalesOrder": {
        "fields": ["id", "quantity", "note", "status"],
        "refs": {"customer": "Customer", "site": "Site", "item": "Item"},
        "required": ["quantity"],
    },
}
READ_ONLY_FIELDS = {"id", "status"}

OPERATORS = {
    "eq": lambda a, b: a == b,
    "ne": lambda a, b: a != b,
    "gt": lambda a, b: a is not None and a > b,
    "gte": lambda a, b: a is not None and a >= b,
    "lt": lambda a, b: a is not None and a < b,
    "lte": lambda a, b: a is not None and a <= b,
    "in": lambda a, b: a in b,
    "contains": lambda a, b: a is not None and str(b) in str(a),
}

_OPERATION = re.compile(r"^\s*(query|mutation)\b[^{]*\{", re.S)
_ROOT_FIELD = re.compile(r"\s*(\w+)\s*(?:\(([^)]*)\))?", re.S)
_ARGUMENT = re.compile(r"(\w+)\s*:\s*\$(\w+)")
_TOKEN = re.compile(r"[{}]|\w+")


class GraphQLError(Exception):
    """Error reported in the response's errors array"""


def _root_fields() -> Dict[str, Tuple[str, str]]:
    fields = {}
    for type_name in SCHEMA:
        single = type_name[0].lower() + type_name[1:]
        fields[single] = (type_name, "get")
        fields[f"{single}s"] = (type_name, "list")
        for action in ("create", "update", "delete"):
            fields[f"{action}{type_name}"] = (type_name, action)
    return fields


ROOT_FIELDS = _root_fields()


def _parse_selection(tokens: List[str], position: int) -> Tuple[Dict[str, Any], int]:
    selection: Dict[str, Any] = {}
    while position < len(tokens):
        token = tokens[position]
        if token == "}":
            return selection, position + 1
        if token == "{":
            raise GraphQLError('Syntax Error: Expected Name, found "{".')
        if position + 1 < len(tokens) and tokens[position + 1] == "{":
            selection[token], position = _parse_selection(tokens, position + 2)
        else:
            selection[token] = True
            position += 1
    raise GraphQLError("Syntax Error: Expected Name, found <EOF>.")


def parse_document(document: str) -> Tuple[str, str, Dict[str, str], Dict[str, Any]]:
    """Split a document into (operation, root field, argument->variable map, selection)"""
    operation = _OPERATION.match(document)
    if operation is None:
        raise GraphQLError("Syntax Error: Unexpected Name.")
    root = _ROOT_FIELD.match(document, operation.end())
    if root is None:
        raise GraphQLError("Syntax Error: Expected Name.")
    field_name = root.group(1)
    arguments = dict(_ARGUMENT.findall(root.group(2) or ""))

    tokens = _TOKEN.findall(document[root.end():])
    if not tokens or tokens[0] != "{":
        raise GraphQLError(f'Field "{field_name}" must have a selection of subfields.')
    selection, _ = _parse_selection(tokens, 1)
    return operation.group(1), field_name, arguments, selection


class FakeGraph:
    """
    Entity store and resolver.

    list_lag: number of list queries a new entity stays invisible for,
        simulating an eventually-consistent read index
    fail_next: queued (status_code, body) responses returned before resolving
    fail_deletes: identifiers whose delete is rejected
    """

    def __init__(self, list_lag: int = 0):
        self.records: Dict[str, Dict[str, Dict[str, Any]]] = {t: {} for t in SCHEMA}
        self.list_lag = list_lag
        self.fail_next: List[Tuple[int, Any]] = []
        self.fail_deletes: set = set()
        self.requests: List[Dict[str, Any]] = []
        self.deleted: List[Tuple[str, str]] = []

    def count(self, type_name: str) -> int:
        return len(self.records[type_name])

    def execute(self, document: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        operation, field_name, arguments, selection = parse_document(document)
        if field_name not in ROOT_FIELDS:
            root_type = "Query" if operation == "query" else "Mutation"
            raise GraphQLError(f'Cannot query field "{field_name}" on type "{root_type}".')

        type_name, action = ROOT_FIELDS[field_name]
        if (action in ("get", "list")) != (operation == "query"):
            raise GraphQLError(f'Cannot query field "{field_name}" on type "{operation.title()}".')

        args = {name: variables.get(variable) for name, variable in arguments.items()}
        self._check_selection(type_name, selection)
        result = getattr(self, f"_{action}")(type_name, args)
        return {field_name: self._project(type_name, result, selection)}

    # === SELECTION ===

    def _check_selection(self, type_name: str, selection: Dict[str, Any]) -> None:
        schema = SCHEMA[type_name]
        for name, sub in selection.items():
            if name in schema["refs"]:
                if sub is True:
                    raise GraphQLError(f'Field "{name}" of type "{schema["refs"][name]}" must have a selection of subfields.')
                self._check_selection(schema["refs"][name], sub)
            elif name in schema["fields"]:
                if isinstance(sub, dict):
                    raise GraphQLError(f'Field "{name}" must not have a selection since type "String" has no subfields.')
            else:
                raise GraphQLError(f'Cannot query field "{name}" on type "{type_name}".')

    def _project(self, type_name: str, result: Any, selection: Dict[str, Any]) -> Any:
        if result is None:
            return None
        if isinstance(result, list):
            return [self._project(type_name, r, selection) for r in result]

        refs = SCHEMA[type_name]["refs"]
        projected = {}
        for name, sub in selection.items():
            if name in refs:
                parent = self.records[refs[name]].get(result.get(f"{name}Id"))
                projected[name] = self._project(refs[name], parent, sub)
            else:
                projected[name] = result.get(name)
        return projected

    # === FILTERS ===

    def _check_filter(self, type_name: str, expression: Dict[str, Any]) -> None:
        schema = SCHEMA[type_name]
        filterable = set(schema["fields"]) | {f"{ref}Id" for ref in schema["refs"]}
        for key, value in expression.items():
            if key in ("and", "or"):
                for part in value:
                    self._check_filter(type_name, part)
            elif key not in filterable:
                raise GraphQLError(
                    f'Variable "$filter" got invalid value; Field "{key}" is not defined by type "{type_name}Filter".'
                )
            else:
                for operator in value:
                    if operator not in OPERATORS:
                        raise GraphQLError(
                            f'Variable "$filter" got invalid value; Field "{operator}" is not defined by type "FieldFilter".'
                        )

    def _matches(self, record: Dict[str, Any], expression: Dict[str, Any]) -> bool:
        for key, value in expression.items():
            if key == "and":
                if not all(self._matches(record, part) for part in value):
                    return False
            elif key == "or":
                if not any(self._matches(record, part) for part in value):
                    return False
            elif not all(OPERATORS[op](record.get(key), operand) for op, operand in value.items()):
                return False
        return True

    # === INPUT ===

    def _check_input(self, type_name: str, data: Dict[str, Any], partial: bool) -> None:
        schema = SCHEMA[type_name]
        accepted = (set(schema["fields"]) - READ_ONLY_FIELDS) | {f"{ref}Id" for ref in schema["refs"]}
        for key in data:
            if key not in accepted:
                raise GraphQLError(f'Invalid input: "{key}" is not accepted by {type_name}Input')

        if not partial:
            for key in schema["required"]:
                if data.get(key) in (None, ""):
                    raise GraphQLError(f"{key} is required")
            for ref in schema["refs"]:
                if not data.get(f"{ref}Id"):
                    raise GraphQLError(f"{ref} is required")

        for ref, ref_type in schema["refs"].items():
            ref_id = data.get(f"{ref}Id")
            if ref_id is not None and ref_id not in self.records[ref_type]:
                raise GraphQLError(f"Invalid {ref}Id: no {ref_type} with id {ref_id}")

        if "quantity" in data and (not isinstance(data["quantity"], int) or data["quantity"] <= 0):
            raise GraphQLError("quantity must be positive")

    # === RESOLVERS ===

    def _get(self, type_name: str, args: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self.records[type_name].get(args.get("id"))

    def _list(self, type_name: str, args: Dict[str, Any]) -> List[Dict[str, Any]]:
        expression = args.get("filter") or {}
        self._check_filter(type_name, expression)

        results = []
        for record in self.records[type_name].values():
            if record["_pending"] > 0:
                record["_pending"] -= 1
                continue
            if self._matches(record, expression):
                results.append(record)

        limit = args.get("limit")
        return results[:limit] if limit is not None else results

    def _create(self, type_name: str, args: Dict[str, Any]) -> Dict[str, Any]:
        data = args.get("input") or {}
        self._check_input(type_name, data, partial=False)

        record = {"id": str(uuid.uuid4()), "_pending": self.list_lag}
        if type_name == "SalesOrder":
            record["status"] = "OPEN"
        record.update(data)
        self.records[type_name][record["id"]] = record
        return record

    def _update(self, type_name: str, args: Dict[str, Any]) -> Dict[str, Any]:
        identifier = args.get("id")
        record = self.records[type_name].get(identifier)
        if record is None:
            raise GraphQLError(f"{type_name} {identifier} not found")
        data = args.get("input") or {}
        self._check_input(type_name, data, partial=True)
        record.update(data)
        return record

    def _delete(self, type_name: str, args: Dict[str, Any]) -> Dict[str, Any]:
        identifier = args.get("id")
        if identifier not in self.records[type_name]:
            raise GraphQLError(f"{type_name} {identifier} not found")
        if identifier in self.fail_deletes:
            raise GraphQLError(f"{type_name} {identifier} is locked")

        for other, schema in SCHEMA.items():
            for ref, ref_type in schema["refs"].items():
                if ref_type != type_name:
                    continue
                for record in self.records[other].values():
                    if record.get(f"{ref}Id") == identifier:
                        raise GraphQLError(f"Cannot delete {type_name} {identifier}: referenced by {other} {record['id']}")

        del self.records[type_name][identifier]
        self.deleted.append((type_name, identifier))
        return {"id": identifier}


def create_app(graph: Optional[FakeGraph] = None) -> FastAPI:
    """FastAPI app serving one FakeGraph at /graphql"""
    app = FastAPI(title="Fake Graph API", version="1.0.0")
    app.state.graph = graph or FakeGraph()

    @app.post("/graphql")
    async def graphql(request: Request):
        """Resolve one GraphQL operation"""
        graph = request.app.state.graph
        payload = await request.json()
        graph.requests.append(payload)

        if graph.fail_next:
            status_code, body = graph.fail_next.pop(0)
            return JSONResponse(body, status_code=status_code)

        try:
            data = graph.execute(payload.get("query", ""), payload.get("variables") or {})
        except GraphQLError as e:
            logger.debug(f"{payload.get('operationName')}: {e}")
            return JSONResponse({"data": None, "errors": [{"message": str(e)}]})
        return {"data": data}

    return app
