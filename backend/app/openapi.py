"""Minimal deterministic OpenAPI spec builder.

Paths come from the live url_map so the document cannot drift from the
registered routes. Protected operations carry ``x-required-action`` (the
action key their view is gated on) and the bearer security requirement;
catalog list operations reference pagination/sort parameters and document
the caching headers.
"""
import re
from typing import Any, Dict
from flask import current_app

from .utils.listing import DEFAULT_LIMIT, MAX_LIMIT

__all__ = ["build_openapi_spec"]

_CONVERTER_RE = re.compile(r"<(?:(\w+):)?(\w+)>")
_SKIP_PREFIXES = ("/static", "/openapi.json", "/docs")
_TYPE_MAP = {"int": "integer", "float": "number"}


def _sort_param_name(resource_name: str) -> str:
    return "Sort" + "".join(part.capitalize() for part in resource_name.split("-")) + "Param"


def caching_headers() -> Dict[str, Any]:
    return {
        "ETag": {"schema": {"type": "string"}},
        "Last-Modified": {"schema": {"type": "string"}},
        "X-Last-Modified-ISO": {"schema": {"type": "string"}},
    }


def _openapi_path(rule: str):
    params = []

    def repl(m):
        conv, name = m.group(1), m.group(2)
        params.append({
            "name": name,
            "in": "path",
            "required": True,
            "schema": {"type": _TYPE_MAP.get(conv or "", "string")},
        })
        return "{" + name + "}"

    return _CONVERTER_RE.sub(repl, rule), params


def build_openapi_spec() -> Dict[str, Any]:
    from .routes.catalog import RESOURCES

    list_paths = {f"/catalog/{r.name}": r for r in RESOURCES}

    params: Dict[str, Any] = {
        "LimitParam": {
            "name": "limit",
            "in": "query",
            "schema": {"type": "integer", "default": DEFAULT_LIMIT, "minimum": 1, "maximum": MAX_LIMIT},
        },
        "OffsetParam": {"name": "offset", "in": "query", "schema": {"type": "integer", "default": 0, "minimum": 0}},
    }
    for res in RESOURCES:
        fields = ", ".join(sorted(res.sort_columns()))
        params[_sort_param_name(res.name)] = {
            "name": "sort",
            "in": "query",
            "schema": {"type": "string"},
            "description": f"Comma separated fields, '-' prefix for descending. Allowed: {fields}",
        }

    components: Dict[str, Any] = {
        "schemas": {
            "Pagination": {
                "type": "object",
                "properties": {
                    "total": {"type": "integer"},
                    "limit": {"type": "integer"},
                    "offset": {"type": "integer"},
                    "returned": {"type": "integer"},
                },
                "required": ["total", "limit", "offset", "returned"],
            },
            "Error": {
                "type": "object",
                "properties": {
                    "error": {
                        "type": "object",
                        "properties": {
                            "status": {"type": "integer"},
                            "title": {"type": "string"},
                            "detail": {"type": "string"},
                        },
                    }
                },
                "required": ["error"],
            },
        },
        "securitySchemes": {"BearerAuth": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"}},
        "parameters": params,
    }

    paths: Dict[str, Any] = {}
    rules = sorted(current_app.url_map.iter_rules(), key=lambda r: (r.rule, r.endpoint))
    for rule in rules:
        if rule.rule.startswith(_SKIP_PREFIXES):
            continue
        view = current_app.view_functions[rule.endpoint]
        path, path_params = _openapi_path(rule.rule)
        for method in sorted(m for m in rule.methods if m not in ("HEAD", "OPTIONS")):
            op: Dict[str, Any] = {
                "operationId": rule.endpoint,
                "summary": (view.__doc__ or rule.endpoint).strip().splitlines()[0],
                "responses": {"200": {"description": "OK"}},
            }
            if path_params:
                op["parameters"] = list(path_params)
            action = getattr(view, "required_action", None)
            if action:
                op["x-required-action"] = action
                op["security"] = [{"BearerAuth": []}]
                op["responses"]["403"] = {"description": "Missing permission"}
            if method == "GET" and path in list_paths:
                res = list_paths[path]
                op["parameters"] = [
                    {"$ref": "#/components/parameters/LimitParam"},
                    {"$ref": "#/components/parameters/OffsetParam"},
                    {"$ref": f"#/components/parameters/{_sort_param_name(res.name)}"},
                ]
                op["responses"]["200"]["headers"] = caching_headers()
                op["responses"]["304"] = {"description": "Not Modified"}
            if method == "POST" and path in list_paths:
                op["responses"] = {"201": {"description": "Created"}, **{k: v for k, v in op["responses"].items() if k != "200"}}
            paths.setdefault(path, {})[method.lower()] = op

    return {
        "openapi": "3.0.3",
        "info": {"title": "Vehicle Configurator API", "version": "1.0.0"},
        "paths": paths,
        "components": components,
    }
