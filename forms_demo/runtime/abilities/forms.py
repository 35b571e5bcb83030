from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from forms_demo.policy.policy import allow_public, require_admin
from forms_demo.runtime import operations
from forms_demo.runtime.abilities.definition import AbilityCategory, AbilityDefinition
from forms_demo.runtime.abilities.registry import AbilityRegistry
from forms_demo.runtime.storage.forms_db import FormsDB

NAMESPACE = "forms-demo"
CATEGORY = "forms-demo-forms"

FORMS_CATEGORY = AbilityCategory(
    slug=CATEGORY,
    label="Forms",
    description="Abilities related to form submissions and management.",
)


class SubmitFormInput(BaseModel):
    form_id: int = Field(..., ge=1, description="The ID of the form to submit to.")
    name: str = Field(..., min_length=1, max_length=255, description="Name of the person submitting the form.")
    email: str = Field(
        ...,
        max_length=255,
        description="Email address of the person submitting the form.",
        json_schema_extra={"format": "email"},
    )
    message: str = Field(..., min_length=1, description="The message content.")


class GetSubmissionInput(BaseModel):
    submission_id: int = Field(..., ge=1, description="The ID of the submission to retrieve.")


class CountFormsInput(BaseModel):
    pass


class CountSubmissionsInput(BaseModel):
    form_id: Optional[int] = Field(None, ge=1, description="Optional form ID to filter submissions.")


_MESSAGE = {"type": "string", "description": "A message describing the result."}

SUBMIT_FORM_OUTPUT: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "success": {"type": "boolean", "description": "Whether the submission was successful."},
        "submission_id": {"type": "integer", "description": "The ID of the created submission."},
        "message": _MESSAGE,
    },
}

GET_SUBMISSION_OUTPUT: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "success": {"type": "boolean", "description": "Whether the request was successful."},
        "submission": {
            "type": "object",
            "properties": {
                "id": {"type": "integer"},
                "form_id": {"type": "integer"},
                "name": {"type": "string"},
                "email": {"type": "string"},
                "message": {"type": "string"},
                "submitted_at": {"type": "string"},
            },
        },
        "message": _MESSAGE,
    },
}

COUNT_FORMS_OUTPUT: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "count": {"type": "integer", "description": "Total number of forms."},
        "forms": {
            "type": "array",
            "description": "All forms, ordered by ID.",
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "integer"},
                    "title": {"type": "string"},
                    "description": {"type": "string"},
                    "created_at": {"type": "string"},
                    "updated_at": {"type": "string"},
                },
            },
        },
    },
}

COUNT_SUBMISSIONS_OUTPUT: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "count": {"type": "integer", "description": "Total number of submissions."},
        "form_id": {"type": "integer", "description": "The form ID used for filtering (if provided)."},
    },
}


def _submit_form(db: FormsDB, args: Dict[str, Any]) -> Dict[str, Any]:
    return operations.submit_form(
        db,
        form_id=args.get("form_id"),
        name=args.get("name"),
        email=args.get("email"),
        message=args.get("message"),
    )


def _get_submission(db: FormsDB, args: Dict[str, Any]) -> Dict[str, Any]:
    return operations.get_submission(db, submission_id=args.get("submission_id"))


def _count_forms(db: FormsDB, args: Dict[str, Any]) -> Dict[str, Any]:
    return operations.count_forms(db, include_forms=True)


def _count_forms_minimal(db: FormsDB, args: Dict[str, Any]) -> Dict[str, Any]:
    return operations.count_forms(db, include_forms=False)


def _count_submissions(db: FormsDB, args: Dict[str, Any]) -> Dict[str, Any]:
    return operations.count_submissions(db, form_id=args.get("form_id"))


def form_abilities() -> List[AbilityDefinition]:
    return [
        AbilityDefinition(
            name=f"{NAMESPACE}/submit-form",
            label="Submit Form",
            description="Submit a new form entry with name, email, and message.",
            category=CATEGORY,
            input_model=SubmitFormInput,
            output_schema=SUBMIT_FORM_OUTPUT,
            permission=allow_public,
            executor=_submit_form,
            legacy_route="submit-form",
        ),
        AbilityDefinition(
            name=f"{NAMESPACE}/get-submission",
            label="Get Submission Details",
            description="Retrieve details of a specific form submission.",
            category=CATEGORY,
            input_model=GetSubmissionInput,
            output_schema=GET_SUBMISSION_OUTPUT,
            permission=require_admin,
            executor=_get_submission,
            legacy_route="get-submission",
        ),
        AbilityDefinition(
            name=f"{NAMESPACE}/count-forms",
            label="Count Forms",
            description="Get the total number of forms in the system, with the list of forms.",
            category=CATEGORY,
            input_model=CountFormsInput,
            output_schema=COUNT_FORMS_OUTPUT,
            permission=require_admin,
            executor=_count_forms,
            legacy_route="count-forms",
            legacy_executor=_count_forms_minimal,
        ),
        AbilityDefinition(
            name=f"{NAMESPACE}/count-submissions",
            label="Count Submissions",
            description="Get the total number of form submissions, optionally filtered by form ID.",
            category=CATEGORY,
            input_model=CountSubmissionsInput,
            output_schema=COUNT_SUBMISSIONS_OUTPUT,
            permission=require_admin,
            executor=_count_submissions,
            legacy_route="count-submissions",
        ),
    ]


def build_registry(db: FormsDB) -> AbilityRegistry:
    return AbilityRegistry(db=db, abilities=form_abilities(), categories=[FORMS_CATEGORY])
