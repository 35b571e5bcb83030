"""
Forms business operations.

Each operation takes the store handle explicitly and returns a plain dict that
both the abilities endpoint and the legacy routes send back unchanged.
Validation and lookup failures are part of the result (`success: false`),
never exceptions.

submit_form checks that the form exists and then inserts without a
transaction around the pair; a form vanishing in between is tolerated.
"""

from __future__ import annotations

import logging
import math
import re
import sqlite3
from typing import Any, Dict, Optional

from forms_demo.runtime.sanitize import is_email, sanitize_email, sanitize_text_field, sanitize_textarea_field
from forms_demo.runtime.storage.forms_db import FormsDB

logger = logging.getLogger("forms_demo.operations")

_INT_PREFIX_RE = re.compile(r"^\s*([+-]?\d+)")

SQLITE_INT_MIN = -(2**63)
SQLITE_INT_MAX = 2**63 - 1


class StoreError(RuntimeError):
    """A count query failed at the storage layer."""


def _parse_int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    if isinstance(value, str):
        m = _INT_PREFIX_RE.match(value)
        return int(m.group(1)) if m else 0
    return 0


def coerce_int(value: Any) -> int:
    """
    Best-effort integer coercion; anything unusable becomes 0.
    Values SQLite cannot store as INTEGER also become 0, so they read as unknown ids.
    """
    n = _parse_int(value)
    return n if SQLITE_INT_MIN <= n <= SQLITE_INT_MAX else 0


def submit_form(db: FormsDB, *, form_id: Any, name: Any, email: Any, message: Any) -> Dict[str, Any]:
    fid = coerce_int(form_id)
    clean_name = sanitize_text_field(name)
    clean_email = sanitize_email(email)
    clean_message = sanitize_textarea_field(message)

    if not is_email(clean_email):
        return {"success": False, "message": "Invalid email address."}

    try:
        if not db.form_exists(fid):
            return {"success": False, "message": "Form not found."}
        submission_id = db.insert_submission(
            form_id=fid,
            name=clean_name,
            email=clean_email,
            message=clean_message,
        )
    except sqlite3.Error:
        logger.exception("submit_form failed for form_id=%s", fid)
        return {"success": False, "message": "Failed to submit form."}

    logger.info("submission %s stored for form %s", submission_id, fid)
    return {
        "success": True,
        "submission_id": submission_id,
        "message": "Form submitted successfully.",
    }


def get_submission(db: FormsDB, *, submission_id: Any) -> Dict[str, Any]:
    sid = coerce_int(submission_id)
    try:
        row = db.get_submission(sid)
    except sqlite3.Error:
        logger.exception("get_submission failed for id=%s", sid)
        return {"success": False, "message": "Failed to retrieve submission."}

    if row is None:
        return {"success": False, "message": "Submission not found."}

    return {
        "success": True,
        "submission": {
            "id": row.id,
            "form_id": row.form_id,
            "name": row.name,
            "email": row.email,
            "message": row.message,
            "submitted_at": row.submitted_at,
        },
        "message": "Submission retrieved successfully.",
    }


def count_forms(db: FormsDB, *, include_forms: bool = True) -> Dict[str, Any]:
    try:
        if not include_forms:
            return {"count": db.count_forms()}
        forms = db.list_forms()
    except sqlite3.Error as e:
        logger.exception("count_forms failed")
        raise StoreError("Database query failed.") from e

    return {
        "count": len(forms),
        "forms": [
            {
                "id": int(f.id),
                "title": str(f.title),
                "description": str(f.description or ""),
                "created_at": str(f.created_at),
                "updated_at": str(f.updated_at),
            }
            for f in forms
        ],
    }


def count_submissions(db: FormsDB, *, form_id: Optional[Any] = None) -> Dict[str, Any]:
    fid = coerce_int(form_id)
    try:
        if fid > 0:
            return {"count": db.count_submissions(fid), "form_id": fid}
        return {"count": db.count_submissions()}
    except sqlite3.Error as e:
        logger.exception("count_submissions failed")
        raise StoreError("Database query failed.") from e
