"""Generate the OpenAPI spec with envelope-shaped success & error examples.

Adds:
 - Schema-aware success examples (real field samples in the {success, message, data} envelope)
 - 400 validation error example with field-level errors
 - Generic 404 / 409 ErrorResponse examples injected where the endpoint can return them
 - Endpoint summary markdown (docs/endpoint-summary.md)

Usage:
    python docs/generate_openapi.py
"""
from pathlib import Path
import json
from typing import Any, Dict, Optional
import sys

# Ensure project root on sys.path when executed from subfolder
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.main import app  # ensures routers registered

BOOK_EXAMPLE = {
    "id": 3,
    "title": "1984",
    "author": "George Orwell",
    "isbn": "9780451524935",
    "publishedYear": 1949,
    "availabilityStatus": "Available",
    "createdAt": "2025-11-15T07:38:12",
    "updatedAt": "2025-11-15T07:38:12",
}
PAGINATION_EXAMPLE = {"page": 1, "limit": 10, "total": 1, "totalPages": 1}

# Schema-level success examples. Key = schema name in components.
SCHEMA_SUCCESS_EXAMPLES: Dict[str, Dict[str, Any]] = {
    "BookEnvelope": {"success": True, "message": "Book retrieved successfully", "data": BOOK_EXAMPLE},
    "BookListEnvelope": {
        "success": True,
        "message": "Books retrieved successfully",
        "data": [BOOK_EXAMPLE],
        "pagination": PAGINATION_EXAMPLE,
    },
    "MessageResponse": {"success": True, "message": "Book deleted successfully"},
    "HealthResponse": {"success": True, "message": "Server is running", "timestamp": "2025-11-15T07:38:12+00:00"},
}

GENERIC_SUCCESS = {"success": True, "message": "OK"}
VALIDATION_ERROR_EXAMPLE = {
    "success": False,
    "message": "Validation failed",
    "errors": [
        {"field": "isbn", "message": "ISBN must be 10 or 13 digits", "value": "12345"},
        {"field": "publishedYear", "message": "Published year must be a valid year", "value": 999},
    ],
}
NOT_FOUND_EXAMPLE = {"success": False, "message": "Book not found"}
CONFLICT_EXAMPLE = {"success": False, "message": "Book with this ISBN already exists"}

# Example request body for create / update
CREATE_BODY_EXAMPLE = {
    "title": "1984",
    "author": "George Orwell",
    "isbn": "9780451524935",
    "publishedYear": 1949,
    "availabilityStatus": "Borrowed",
}
UPDATE_BODY_EXAMPLE = {"availabilityStatus": "Available"}

spec: Dict[str, Any] = app.openapi()


# Helper to extract schema ref name
def _extract_ref_schema(media_obj: Dict[str, Any]) -> Optional[str]:
    schema = media_obj.get("schema")
    if isinstance(schema, dict) and "$ref" in schema:
        ref: str = schema["$ref"]
        if ref.startswith("#/components/schemas/"):
            return ref.split("/")[-1]
    return None


def _set_body_example(op: Dict[str, Any], example: Dict[str, Any]) -> None:
    rb = op.get("requestBody") or {}
    content = rb.get("content") or {}
    json_ct = content.get("application/json") or {}
    json_ct["example"] = example
    content["application/json"] = json_ct
    rb["content"] = content
    op["requestBody"] = rb


def _ensure_error(responses: Dict[str, Any], code: str, example: Dict[str, Any], description: str) -> None:
    responses[code] = {
        "description": description,
        "content": {
            "application/json": {
                "schema": {"$ref": "#/components/schemas/ErrorResponse"},
                "example": example,
            }
        },
    }


# ErrorResponse is rendered by exception handlers, so it is not referenced by any route
components = spec.setdefault("components", {}).setdefault("schemas", {})
if "ErrorResponse" not in components:
    from app.schemas.common import ErrorResponse

    error_schema = ErrorResponse.model_json_schema(ref_template="#/components/schemas/{model}")
    for name, sub_schema in error_schema.pop("$defs", {}).items():
        components.setdefault(name, sub_schema)
    components["ErrorResponse"] = error_schema

# Inject examples
for path, methods in spec.get("paths", {}).items():
    for method_name, op in methods.items():
        if not isinstance(op, dict):
            continue
        method = method_name.lower()
        if method == "post" and path == "/books":
            _set_body_example(op, CREATE_BODY_EXAMPLE)
        if method == "put" and path == "/books/{book_id}":
            _set_body_example(op, UPDATE_BODY_EXAMPLE)

        responses = op.get("responses", {})
        # FastAPI의 기본 422 대신 실제 응답 코드(400)로 교체
        responses.pop("422", None)
        if path.startswith("/books"):
            _ensure_error(responses, "400", VALIDATION_ERROR_EXAMPLE, "Validation failed")
        if path == "/books/{book_id}":
            _ensure_error(responses, "404", NOT_FOUND_EXAMPLE, "Book not found")
        if (method == "post" and path == "/books") or (method == "put" and path == "/books/{book_id}"):
            _ensure_error(responses, "409", CONFLICT_EXAMPLE, "Duplicate ISBN")

        for status_code, resp in responses.items():
            if not isinstance(resp, dict) or not status_code.startswith("2"):
                continue
            for media_type, media_obj in (resp.get("content") or {}).items():
                if isinstance(media_obj, dict):
                    ref_name = _extract_ref_schema(media_obj)
                    example = SCHEMA_SUCCESS_EXAMPLES.get(ref_name, GENERIC_SUCCESS)
                    media_obj.setdefault("example", example)
        op["responses"] = responses

# Write file
out_path = Path("docs/openapi.json")
out_path.write_text(json.dumps(spec, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
print(f"Wrote {out_path} (paths={len(spec.get('paths', {}))})")

# Build endpoint summary markdown
summary_lines = [
    "| Method | Path | Success Code | Error Codes | Summary |",
    "|--------|------|--------------|-------------|---------|",
]
for path, methods in spec.get("paths", {}).items():
    for method_name, op in methods.items():
        if method_name.lower() not in {"get", "post", "put", "delete", "patch"}:
            continue
        responses = op.get("responses", {})
        success_code = next((c for c in responses.keys() if c.startswith("2")), "")
        error_codes = ", ".join(sorted(c for c in responses.keys() if c[0] in "45"))
        summary_lines.append(
            f"| {method_name.upper()} | {path} | {success_code} | {error_codes} | {op.get('summary', '')} |"
        )

summary_md = "# Endpoint Summary\n\n" + "\n".join(summary_lines) + "\n"
Path("docs/endpoint-summary.md").write_text(summary_md, encoding="utf-8")
print("Wrote docs/endpoint-summary.md (rows=", len(summary_lines) - 2, ")")
