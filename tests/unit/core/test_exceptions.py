from __future__ import annotations

import pytest
from django.http import Http404
from rest_framework import exceptions
from rest_framework.exceptions import ErrorDetail

from modules.core.exceptions import Conflict, _flatten, standardized_exception_handler

pytestmark = pytest.mark.unit


class TestFlatten:
    def test_field_errors(self):
        detail = {"quantity": [ErrorDetail("Too small.", code="min_value")]}
        assert _flatten(detail) == [
            {"code": "min_value", "detail": "Too small.", "attr": "quantity"}
        ]

    def test_non_field_errors_have_no_attr(self):
        detail = {"non_field_errors": [ErrorDetail("Bad pair.", code="invalid")]}
        assert _flatten(detail)[0]["attr"] is None

    def test_nested_attr_is_dotted(self):
        detail = {"payload": {"reason": [ErrorDetail("Required.", code="required")]}}
        assert _flatten(detail)[0]["attr"] == "payload.reason"

    def test_plain_detail(self):
        assert _flatten(ErrorDetail("Nope.", code="StaleVersion")) == [
            {"code": "StaleVersion", "detail": "Nope.", "attr": None}
        ]


class TestHandler:
    def test_conflict_is_client_error(self):
        response = standardized_exception_handler(
            Conflict("Expected version 3, current version is 4.", code="StaleVersion"),
            {},
        )
        assert response.status_code == 409
        assert response.data == {
            "type": "client_error",
            "errors": [
                {
                    "code": "StaleVersion",
                    "detail": "Expected version 3, current version is 4.",
                    "attr": None,
                }
            ],
        }

    def test_validation_error(self):
        response = standardized_exception_handler(
            exceptions.ValidationError({"quantity": ["Required."]}), {}
        )
        assert response.status_code == 400
        assert response.data["type"] == "validation_error"
        assert response.data["errors"][0]["attr"] == "quantity"

    def test_django_404(self):
        response = standardized_exception_handler(Http404(), {})
        assert response.status_code == 404
        assert response.data["errors"][0]["code"] == "not_found"

    def test_unhandled_exception_is_left_to_django(self):
        assert standardized_exception_handler(RuntimeError("boom"), {}) is None
