"""Tests for EntryService."""

import threading

import pytest

from doc_catalog.context import acting_as
from doc_catalog.errors import (
    EntryNotFound,
    InvalidDocumentSize,
    InvalidMetadata,
    PermissionDenied,
)
from doc_catalog.models.database import HistoryAction


def submit(service, principal, **params):
    with acting_as(principal):
        return service.submit_document(**params)


class TestLifecycle:
    """Submit, revise, withdraw walk-through."""

    def test_paper_walkthrough(self, service):
        with acting_as("P"):
            entry_id = service.submit_document("Paper A", 1024, "Summary text", ["ai", "nlp"])
            assert entry_id == 1
            assert service.fetch_identity(1).model_dump() == {"name": "Paper A", "creator": "P"}

            service.revise_document(1, "Paper A v2", 2048, "Updated", ["ai"])
            view = service.view_full(1)
            assert view.name == "Paper A v2"
            assert view.byte_count == 2048
            assert view.summary == "Updated"
            assert view.tags == ["ai"]

        with acting_as("Q"):
            with pytest.raises(PermissionDenied):
                service.revise_document(1, "Hijacked", 1, "x", ["x"])

        with acting_as("P"):
            service.withdraw_document(1)
            with pytest.raises(EntryNotFound):
                service.view_full(1)

    def test_revise_keeps_identity_fields(self, service, valid_params):
        entry_id = submit(service, "P", **valid_params)
        before = service.view_full(entry_id)

        with acting_as("P"):
            service.revise_document(entry_id, "New", 7, "New summary", ["new"])

        after = service.view_full(entry_id)
        assert after.entry_id == before.entry_id
        assert after.creator == "P"
        assert after.submission_height == before.submission_height

    def test_submission_grants_creator(self, service, valid_params):
        entry_id = submit(service, "P", **valid_params)

        assert service.has_access(entry_id, "P") is True
        assert service.has_access(entry_id, "Q") is False

    def test_catalog_alias_behaves_like_submit(self, service, valid_params):
        with acting_as("P"):
            first = service.submit_document(**valid_params)
            second = service.catalog_document(**valid_params)
            with pytest.raises(InvalidMetadata):
                service.catalog_document("", 1, "s", ["t"])

        assert second == first + 1
        assert service.fetch_identity(second).creator == "P"
        assert service.has_access(second, "P") is True

    def test_submit_requires_acting_principal(self, service, valid_params):
        with pytest.raises(RuntimeError):
            service.submit_document(**valid_params)
        assert service.current_counter() == 0


class TestEntryIds:
    """Counter allocation."""

    def test_ids_increase_by_one(self, service, valid_params):
        ids = [submit(service, "P", **valid_params) for _ in range(3)]

        assert ids == [1, 2, 3]
        assert service.current_counter() == 3

    def test_failed_submissions_do_not_advance_counter(self, service, valid_params):
        submit(service, "P", **valid_params)

        with acting_as("P"):
            with pytest.raises(InvalidDocumentSize):
                service.submit_document("Paper", 0, "s", ["t"])
            with pytest.raises(InvalidMetadata):
                service.submit_document("Paper", 10, "s", [])

        assert service.current_counter() == 1
        assert submit(service, "P", **valid_params) == 2

    def test_undecodable_text_is_rejected_as_metadata(self, service):
        with acting_as("P"):
            with pytest.raises(InvalidMetadata):
                service.submit_document("\ud800", 1, "s", ["t"])

        assert service.current_counter() == 0

    def test_withdrawn_ids_are_not_reused(self, service, valid_params):
        entry_id = submit(service, "P", **valid_params)
        with acting_as("P"):
            service.withdraw_document(entry_id)

        assert submit(service, "P", **valid_params) == entry_id + 1

    def test_counter_survives_new_service(self, make_service, valid_params):
        submit(make_service(), "P", **valid_params)

        assert submit(make_service(), "P", **valid_params) == 2

    def test_concurrent_submissions_get_distinct_ids(self, service, valid_params):
        results = []
        errors = []

        def worker(principal):
            try:
                for _ in range(5):
                    results.append(submit(service, principal, **valid_params))
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(f"user-{i}",)) for i in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert sorted(results) == list(range(1, 21))
        assert service.current_counter() == 20


class TestSubmissionHeight:
    """Ordering marker recorded at creation."""

    def test_heights_increase(self, service, valid_params):
        first = submit(service, "P", **valid_params)
        second = submit(service, "P", **valid_params)

        assert service.view_full(second).submission_height > service.view_full(first).submission_height

    def test_new_service_continues_above_stored_heights(self, make_service, valid_params):
        first_service = make_service()
        first = submit(first_service, "P", **valid_params)
        with acting_as("P"):
            first_service.revise_document(first, "Again", 1, "s", ["t"])
        last_height = first_service.get_history(first).history[0].height

        second_service = make_service()
        second = submit(second_service, "P", **valid_params)

        assert second_service.view_full(second).submission_height > last_height

    def test_services_sharing_a_store_keep_one_order(self, make_service, valid_params):
        first_service = make_service()
        second_service = make_service()

        ids = [
            submit(first_service, "P", **valid_params),
            submit(second_service, "Q", **valid_params),
            submit(second_service, "Q", **valid_params),
            submit(first_service, "P", **valid_params),
        ]
        heights = [first_service.view_full(i).submission_height for i in ids]

        assert ids == [1, 2, 3, 4]
        assert heights == [1, 2, 3, 4]

    def test_mutations_advance_height(self, make_service, valid_params):
        first_service = make_service()
        second_service = make_service()
        first = submit(first_service, "P", **valid_params)
        with acting_as("P"):
            second_service.revise_document(first, "Again", 1, "s", ["t"])

        second = submit(first_service, "P", **valid_params)

        revised_height = first_service.get_history(first).history[0].height
        assert first_service.view_full(second).submission_height > revised_height

    def test_custom_height_source(self, session_factory, settings, valid_params):
        from doc_catalog.services.entry_service import EntryService

        service = EntryService(session_factory, settings=settings, height_source=lambda: 777)
        entry_id = submit(service, "P", **valid_params)

        assert service.view_full(entry_id).submission_height == 777


class TestMissingEntries:
    """Operations on ids that do not exist."""

    @pytest.mark.parametrize("method", [
        "view_full",
        "fetch_essentials",
        "fetch_identity",
        "extract_summary",
        "generate_complete_profile",
    ])
    def test_reads_raise_not_found(self, service, method):
        with pytest.raises(EntryNotFound) as exc_info:
            getattr(service, method)(99)
        assert exc_info.value.entry_id == 99

    def test_revise_and_withdraw_raise_not_found(self, service):
        with acting_as("P"):
            with pytest.raises(EntryNotFound):
                service.revise_document(1, "n", 1, "s", ["t"])
            with pytest.raises(EntryNotFound):
                service.withdraw_document(1)

    def test_withdrawn_entry_is_gone_everywhere(self, service, valid_params):
        entry_id = submit(service, "P", **valid_params)
        with acting_as("P"):
            service.withdraw_document(entry_id)
            with pytest.raises(EntryNotFound):
                service.withdraw_document(entry_id)
            with pytest.raises(EntryNotFound):
                service.revise_document(entry_id, "n", 1, "s", ["t"])
        with pytest.raises(EntryNotFound):
            service.extract_summary(entry_id)

    def test_not_found_checked_before_validation(self, service):
        with acting_as("P"):
            with pytest.raises(EntryNotFound):
                service.revise_document(5, "", 0, "", [])


class TestOwnership:
    """Only the creator may mutate an entry."""

    def test_revise_by_other_leaves_record_unchanged(self, service, valid_params):
        entry_id = submit(service, "P", **valid_params)
        before = service.view_full(entry_id)

        with acting_as("Q"):
            with pytest.raises(PermissionDenied) as exc_info:
                service.revise_document(entry_id, "Other", 1, "Other", ["x"])

        assert exc_info.value.principal == "Q"
        assert exc_info.value.entry_id == entry_id
        assert service.view_full(entry_id) == before

    def test_withdraw_by_other_is_denied(self, service, valid_params):
        entry_id = submit(service, "P", **valid_params)
        before = service.view_full(entry_id)

        with acting_as("Q"):
            with pytest.raises(PermissionDenied):
                service.withdraw_document(entry_id)

        assert service.view_full(entry_id) == before
        assert service.get_history(entry_id).count == 1

    def test_permission_checked_before_validation(self, service, valid_params):
        entry_id = submit(service, "P", **valid_params)

        with acting_as("Q"):
            with pytest.raises(PermissionDenied):
                service.revise_document(entry_id, "", 0, "", [])

    def test_invalid_revision_leaves_record_unchanged(self, service, valid_params):
        entry_id = submit(service, "P", **valid_params)
        before = service.view_full(entry_id)

        with acting_as("P"):
            with pytest.raises(InvalidDocumentSize):
                service.revise_document(entry_id, "Fine", 2_000_000_000, "Fine", ["ok"])
            with pytest.raises(InvalidMetadata):
                service.revise_document(entry_id, "Fine", 10, "Fine", ["x" * 41])

        assert service.view_full(entry_id) == before
        assert service.get_history(entry_id).count == 1


class TestProjections:
    """Read projections over one record."""

    def test_field_subsets(self, service, valid_params):
        entry_id = submit(service, "P", **valid_params)

        assert service.fetch_essentials(entry_id).model_dump() == {
            "entry_id": entry_id,
            "name": "Paper A",
            "byte_count": 1024,
            "tags": ["ai", "nlp"],
        }
        assert service.extract_summary(entry_id).model_dump() == {
            "entry_id": entry_id,
            "summary": "Summary text",
        }
        assert set(service.view_full(entry_id).model_dump()) == {
            "entry_id", "name", "creator", "byte_count",
            "submission_height", "summary", "tags",
        }

    def test_reads_are_open_by_default(self, service, valid_params):
        entry_id = submit(service, "P", **valid_params)

        with acting_as("stranger"):
            assert service.view_full(entry_id).name == "Paper A"
        assert service.fetch_identity(entry_id).creator == "P"

    def test_complete_profile_for_creator(self, service, valid_params):
        entry_id = submit(service, "P", **valid_params)

        with acting_as("P"):
            profile = service.generate_complete_profile(entry_id)

        assert profile.name == "Paper A"
        assert profile.tag_count == 2
        assert profile.caller_is_creator is True
        assert profile.caller_has_access is True

    def test_complete_profile_for_others(self, service, valid_params):
        entry_id = submit(service, "P", **valid_params)

        with acting_as("Q"):
            profile = service.generate_complete_profile(entry_id)
        anonymous = service.generate_complete_profile(entry_id)

        assert profile.caller_is_creator is False
        assert profile.caller_has_access is False
        assert anonymous.caller_is_creator is False
        assert anonymous.caller_has_access is False


class TestValidateSubmissionParameters:
    """Dry-run validation."""

    def test_valid_parameters_do_not_touch_store(self, service, valid_params):
        service.validate_submission_parameters(**valid_params)

        assert service.current_counter() == 0

    def test_invalid_parameters_raise(self, service):
        with pytest.raises(InvalidMetadata):
            service.validate_submission_parameters("x" * 81, 1, "s", ["t"])
        with pytest.raises(InvalidDocumentSize):
            service.validate_submission_parameters("x", 0, "s", ["t"])


class TestListing:
    """Paginated listing."""

    def test_lists_in_id_order(self, service, valid_params):
        for principal in ("P", "Q", "P"):
            submit(service, principal, **valid_params)

        result = service.list_documents()

        assert [e.entry_id for e in result.entries] == [1, 2, 3]
        assert result.count == 3
        assert result.total_pages == 1

    def test_filter_by_creator_and_paginate(self, service, valid_params):
        for _ in range(5):
            submit(service, "P", **valid_params)
        submit(service, "Q", **valid_params)

        page = service.list_documents(creator="P", page=2, page_size=2)

        assert [e.entry_id for e in page.entries] == [3, 4]
        assert page.count == 5
        assert page.total_pages == 3

    def test_page_size_is_capped(self, make_service):
        service = make_service(max_page_size=3)

        assert service.list_documents(page_size=50).page_size == 3

    def test_empty_creator_filter_matches_nothing(self, service, valid_params):
        submit(service, "P", **valid_params)

        result = service.list_documents(creator="")

        assert result.entries == []
        assert result.count == 0

    def test_empty_catalog(self, service):
        result = service.list_documents()

        assert result.entries == []
        assert result.count == 0
        assert result.total_pages == 1


class TestHistory:
    """Audit trail of entry changes."""

    def test_records_every_mutation(self, service, valid_params):
        entry_id = submit(service, "P", **valid_params)
        with acting_as("P"):
            service.revise_document(entry_id, "Paper B", 1024, "Summary text", ["ai", "nlp"])
            service.withdraw_document(entry_id)

        history = service.get_history(entry_id)

        assert [h.action for h in history.history] == [
            HistoryAction.WITHDRAWN,
            HistoryAction.REVISED,
            HistoryAction.SUBMITTED,
        ]
        assert history.history[1].change_summary == "Changed: name"
        assert all(h.principal == "P" for h in history.history)

    def test_denied_mutation_is_not_recorded(self, service, valid_params):
        entry_id = submit(service, "P", **valid_params)
        with acting_as("Q"):
            with pytest.raises(PermissionDenied):
                service.withdraw_document(entry_id)

        assert service.get_history(entry_id).count == 1
