"""
Tests for Bookkeeper models

Test strategy:
1. Unit tests for individual components (models, drafts, audit events)
2. Service tests against the in-memory store (see the other modules)
3. No real API calls in tests
"""

import pytest
from datetime import date, datetime
from decimal import Decimal

from pydantic import ValidationError

from bookkeeper.models.records import (
    CalendarEvent,
    Client,
    Document,
    DocumentItem,
    Income,
    IncomeStatus,
    MonthlyOverview,
    ProjectFinancials,
    ProjectStatus,
)
from bookkeeper.models.forms import (
    ClientDraft,
    DocumentHeaderDraft,
    ExpenseDraft,
    IncomeDraft,
    ProjectDraft,
    ValidationIssue,
    ValidationResult,
)
from bookkeeper.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestRecordModels:
    """Tests for the models of rows read from the store."""

    def test_unknown_columns_are_ignored(self):
        client = Client.model_validate({"id": "c-1", "name": "Acme", "unexpected": 1})
        assert client.name == "Acme"
        assert not hasattr(client, "unexpected")

    def test_income_amount_defaults_to_zero(self):
        assert Income.model_validate({"id": 1, "amount_chf": None}).amount_chf == Decimal("0")
        assert Income.model_validate({"id": 1, "amount_chf": "abc"}).amount_chf == Decimal("0")

    def test_income_parses_numeric_strings(self):
        income = Income.model_validate({"id": 1, "tx_date": "2025-03-02", "amount_chf": "1000.50"})
        assert income.amount_chf == Decimal("1000.50")
        assert income.tx_date == date(2025, 3, 2)

    def test_status_stays_a_plain_string(self):
        income = Income.model_validate({"id": 1, "status": "overdue"})
        assert income.status == "overdue"

    def test_document_totals_may_be_missing(self):
        document = Document.model_validate({"id": "d-1", "doc_type": "quote"})
        assert document.total is None
        assert document.doc_number is None
        assert document.tax_rate == Decimal("0")

    def test_document_item_positions_start_at_one(self):
        with pytest.raises(ValidationError):
            DocumentItem(document_id="d-1", position=0)

    def test_calendar_event_parses_timestamps(self):
        event = CalendarEvent.model_validate({
            "id": 1,
            "title": "Kick-off",
            "start_at": "2025-03-03T09:00:00+00:00",
        })
        assert isinstance(event.start_at, datetime)
        assert event.end_at is None

    def test_month_key_must_be_year_and_month(self):
        with pytest.raises(ValidationError):
            MonthlyOverview(month_key="2025-3")

    def test_project_financials_coerces_totals(self):
        row = ProjectFinancials.model_validate({
            "id": "p-1", "name": "Web", "income_chf": None, "expense_chf": "10", "profit_chf": "-10",
        })
        assert row.income_chf == Decimal("0")
        assert row.profit_chf == Decimal("-10")


class TestFormDrafts:
    """Tests for lenient form coercion."""

    def test_income_draft_is_lenient(self):
        draft = IncomeDraft.model_validate({
            "tx_date": "not a date",
            "project_id": "",
            "client_id": "  ",
            "category_id": "3",
            "amount_chf": "abc",
            "description": "",
        })
        assert draft.tx_date is None
        assert draft.project_id is None
        assert draft.client_id is None
        assert draft.category_id == 3
        assert draft.amount_chf == Decimal("0")
        assert draft.status == IncomeStatus.OPEN
        assert draft.description is None

    def test_negative_money_becomes_zero(self):
        assert IncomeDraft(amount_chf="-250").amount_chf == Decimal("0")
        assert ExpenseDraft(amount_chf=-1).amount_chf == Decimal("0")
        assert ProjectDraft(name="Shop", budget_chf="-100").budget_chf == Decimal("0")
        assert ProjectDraft(name="Shop", budget_chf="n/a").budget_chf is None
        assert DocumentHeaderDraft(client_id="c-1", tax_rate="-8").tax_rate == Decimal("0")

    def test_uuid_references_stay_strings(self):
        draft = ExpenseDraft(project_id="5f0c8a2e-0000-4000-8000-000000000000", category_id=1)
        assert draft.project_id == "5f0c8a2e-0000-4000-8000-000000000000"

    def test_income_payload_is_json_safe(self):
        payload = IncomeDraft(
            tx_date=date(2025, 3, 2),
            category_id=1,
            amount_chf=Decimal("120.50"),
        ).to_payload()
        assert payload == {
            "tx_date": "2025-03-02",
            "project_id": None,
            "client_id": None,
            "category_id": 1,
            "amount_chf": "120.50",
            "status": "open",
            "description": None,
        }

    def test_project_requires_a_name(self):
        with pytest.raises(ValidationError):
            ProjectDraft(name="   ")

    def test_project_budget_is_optional(self):
        draft = ProjectDraft(name="Web", budget_chf="lots")
        assert draft.budget_chf is None
        assert draft.status == ProjectStatus.ACTIVE

    def test_client_blank_fields_become_none(self):
        draft = ClientDraft(name=" Acme ", email="", vat_number="  ")
        assert draft.name == "Acme"
        assert draft.email is None
        assert draft.vat_number is None

    def test_document_header_payload_fields(self):
        payload = DocumentHeaderDraft(client_id="c-1", tax_rate="8.1").to_payload()
        assert set(payload) == {
            "doc_type", "client_id", "project_id", "issue_date", "due_date", "tax_rate", "notes",
        }
        assert payload["doc_type"] == "invoice"
        assert payload["tax_rate"] == "8.1"


class TestValidationModels:
    """Tests for validation-related models."""

    def test_validation_issue_creation(self):
        issue = ValidationIssue(
            field="category_id",
            issue_type="missing",
            message="A category is required",
            severity="error",
        )
        assert issue.severity == "error"

    def test_validation_issue_rejects_unknown_severity(self):
        with pytest.raises(ValidationError):
            ValidationIssue(field="x", issue_type="x", message="x", severity="fatal")

    def test_validation_result_reports_errors(self):
        result = ValidationResult(issues=[
            ValidationIssue(field="a", issue_type="missing", message="a", severity="error"),
            ValidationIssue(field="b", issue_type="unknown_reference", message="b", severity="warning"),
        ])
        assert result.has_errors

    def test_empty_result_is_valid(self):
        assert not ValidationResult().has_errors


class TestAuditModels:
    """Tests for audit event models."""

    def test_record_created_event(self):
        event = AuditEventBuilder.record_created("incomes", 42)
        assert event.event_type == AuditEventType.RECORD_CREATED
        assert event.record_id == 42
        assert event.is_user_action

    def test_delete_failed_is_an_error(self):
        event = AuditEventBuilder.delete_failed("clients", "c-1", "permission denied")
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "permission denied"

    def test_catalog_reload_with_failures_is_a_warning(self):
        event = AuditEventBuilder.catalog_reloaded({"clients": 0}, ["clients"])
        assert event.severity == AuditSeverity.WARNING
        assert event.details["failed"] == ["clients"]

    def test_to_log_dict_is_serialisable(self):
        event = AuditEvent(
            event_type=AuditEventType.RECORD_DELETED,
            collection="documents",
            record_id="d-1",
            description="Deleted record from documents",
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "record_deleted"
        assert log_dict["record_id"] == "d-1"
        assert isinstance(log_dict["timestamp"], str)
