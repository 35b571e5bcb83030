from __future__ import annotations

import pytest

from forms_demo.policy.policy import PUBLIC_CALLER, CallerContext, Tier
from forms_demo.runtime.abilities.forms import CATEGORY, build_registry
from forms_demo.runtime.abilities.registry import AbilityInvalidInput, AbilityNotFound, AbilityPermissionDenied

ADMIN = CallerContext(tier=Tier.ADMIN, username="admin")


@pytest.fixture
def registry(db):
    return build_registry(db)


class TestRegistration:
    def test_four_abilities_in_one_category(self, registry):
        names = [a.name for a in registry.list()]
        assert names == [
            "forms-demo/submit-form",
            "forms-demo/get-submission",
            "forms-demo/count-forms",
            "forms-demo/count-submissions",
        ]
        assert {a.category for a in registry.list()} == {CATEGORY}
        assert [c.label for c in registry.categories()] == ["Forms"]

    def test_submit_form_input_schema(self, registry):
        schema = registry.get("forms-demo/submit-form").input_schema
        assert schema["type"] == "object"
        assert schema["required"] == ["form_id", "name", "email", "message"]
        props = schema["properties"]
        assert props["form_id"]["type"] == "integer"
        assert props["form_id"]["minimum"] == 1
        assert props["name"]["minLength"] == 1
        assert props["name"]["maxLength"] == 255
        assert props["email"]["format"] == "email"
        assert "title" not in schema
        assert "title" not in props["form_id"]

    def test_optional_filter_advertised_as_plain_integer(self, registry):
        schema = registry.get("forms-demo/count-submissions").input_schema
        form_id = schema["properties"]["form_id"]
        assert form_id["type"] == "integer"
        assert form_id["minimum"] == 1
        assert "anyOf" not in form_id
        assert "default" not in form_id
        assert "required" not in schema

    def test_count_forms_takes_no_input(self, registry):
        schema = registry.get("forms-demo/count-forms").input_schema
        assert schema["properties"] == {}


class TestExecute:
    def test_unknown_ability(self, registry):
        with pytest.raises(AbilityNotFound):
            registry.execute("forms-demo/delete-form", {}, ADMIN)

    def test_submit_is_public(self, registry):
        res = registry.execute(
            "forms-demo/submit-form",
            {"form_id": 1, "name": "Ann", "email": "ann@example.com", "message": "hi"},
            PUBLIC_CALLER,
        )
        assert res["success"] is True

    @pytest.mark.parametrize(
        "name,payload",
        [
            ("forms-demo/get-submission", {"submission_id": 1}),
            ("forms-demo/count-forms", {}),
            ("forms-demo/count-submissions", {}),
        ],
    )
    def test_admin_abilities_reject_public_callers(self, registry, name, payload):
        with pytest.raises(AbilityPermissionDenied) as exc_info:
            registry.execute(name, payload, PUBLIC_CALLER)
        assert exc_info.value.status_code == 403

    def test_permission_checked_before_input(self, registry):
        with pytest.raises(AbilityPermissionDenied):
            registry.execute("forms-demo/get-submission", {"submission_id": "nope"}, PUBLIC_CALLER)

    @pytest.mark.parametrize(
        "payload",
        [
            {"name": "Ann", "email": "ann@example.com", "message": "hi"},
            {"form_id": 0, "name": "Ann", "email": "ann@example.com", "message": "hi"},
            {"form_id": 1, "name": "", "email": "ann@example.com", "message": "hi"},
            {"form_id": 1, "name": "x" * 256, "email": "ann@example.com", "message": "hi"},
            {"form_id": 1, "name": "Ann", "email": "ann@example.com", "message": ""},
            ["not", "an", "object"],
        ],
    )
    def test_schema_violations_never_reach_the_store(self, registry, db, payload):
        with pytest.raises(AbilityInvalidInput) as exc_info:
            registry.execute("forms-demo/submit-form", payload, PUBLIC_CALLER)
        assert exc_info.value.to_dict()["data"] == {"status": 400}
        assert db.count_submissions() == 0

    def test_invalid_email_is_a_business_result(self, registry):
        res = registry.execute(
            "forms-demo/submit-form",
            {"form_id": 1, "name": "Ann", "email": "not-an-email", "message": "hi"},
            PUBLIC_CALLER,
        )
        assert res == {"success": False, "message": "Invalid email address."}

    def test_missing_payload_treated_as_empty(self, registry):
        assert registry.execute("forms-demo/count-submissions", None, ADMIN) == {"count": 0}

    def test_count_forms_returns_rich_variant(self, registry):
        res = registry.execute("forms-demo/count-forms", {}, ADMIN)
        assert res["count"] == 1
        assert res["forms"][0]["id"] == 1

    def test_get_submission_result_is_verbatim(self, registry, db):
        registry.execute(
            "forms-demo/submit-form",
            {"form_id": "1", "name": "Ann", "email": "ann@example.com", "message": "hi"},
            PUBLIC_CALLER,
        )
        res = registry.execute("forms-demo/get-submission", {"submission_id": 1}, ADMIN)
        assert res["submission"]["form_id"] == 1
        assert res["message"] == "Submission retrieved successfully."
