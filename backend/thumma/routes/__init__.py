# Overview: Helpers shared by the API blueprints.

import csv
import io
import json

from flask import jsonify, request

from ..errors import ThummaError, ValidationError
from ..serialization import camelize, to_snake


SPREADSHEET_EXTENSIONS = {"xlsx", "xlsm", "xltx", "xltm"}


def error_response(exc: ThummaError):
    """Map a service error to {"error", "details"} with its HTTP status."""
    body = {"error": exc.message}
    if exc.details:
        body["details"] = camelize(exc.details)
    return jsonify(body), exc.http_status


def query_flag(name: str, default: bool = False) -> bool:
    value = request.args.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes"}


def read_upload_rows(file) -> list[dict]:
    """
    Rows of an uploaded CSV, JSON or Excel file as header -> value dicts.

    JSON may be a list of objects or {"rows": [...]}. For spreadsheets the
    first row of the active sheet holds the headers.
    """
    if file is None or not file.filename:
        raise ValidationError("file is required")

    ext = file.filename.rsplit(".", 1)[-1].lower() if "." in file.filename else ""
    try:
        if ext == "csv":
            stream = io.StringIO(file.stream.read().decode("utf-8-sig"))
            return [dict(row) for row in csv.DictReader(stream)]
        if ext == "json":
            rows = json.load(file.stream)
            if isinstance(rows, dict):
                rows = rows.get("rows", [])
            if not isinstance(rows, list):
                raise ValidationError("JSON upload must be a list of rows")
            return [row for row in rows if isinstance(row, dict)]
        if ext in SPREADSHEET_EXTENSIONS:
            from openpyxl import load_workbook
            wb = load_workbook(file.stream, data_only=True)
            data = list(wb.active.values)
            if not data:
                return []
            headers = [str(h).strip() if h is not None else "" for h in data[0]]
            return [
                {headers[i]: row[i] for i in range(len(headers)) if headers[i]}
                for row in data[1:]
                if any(cell not in (None, "") for cell in row)
            ]
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValidationError(f"Failed to parse upload: {exc}")
    raise ValidationError("Unsupported file format", {"allowed": ["csv", "json", *sorted(SPREADSHEET_EXTENSIONS)]})


def upload_or_json_rows() -> list[dict]:
    """Rows from a multipart `file` upload, or from a JSON body {"rows": [...]}."""
    if "file" in request.files:
        return read_upload_rows(request.files["file"])
    data = request.get_json(silent=True) or {}
    rows = data.get("rows") if isinstance(data, dict) else data
    if not isinstance(rows, list):
        raise ValidationError("rows must be a list")
    return [row for row in rows if isinstance(row, dict)]


def snake_headers(rows: list[dict]) -> list[dict]:
    """Normalize "Supplier Name", "supplierName" and "supplier_name" to one key."""
    def _key(header) -> str:
        text = str(header).strip()
        if " " in text:
            return "_".join(text.lower().split())
        return to_snake(text)
    return [{_key(k): v for k, v in row.items()} for row in rows]


def form_or_json(folder: str) -> dict:
    """
    Snake_case payload from a JSON body, or from multipart form fields with
    an optional `file` attachment stored under `folder` (set as file_url).
    """
    from ..serialization import read_json, snakify
    from ..services.storage_service import upload_file

    if request.files or request.form:
        payload = snakify(request.form.to_dict())
        if "file" in request.files:
            payload["file_url"] = upload_file(request.files["file"], folder)
        return payload
    return read_json()
