import unittest
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from sqlalchemy import true

from app.core.errors import FilterHandlerNotRegistered, OperationCancelled
from app.models.log import Log
from app.schemas.logs import GetLogsQuery
from app.schemas.query import (
    CultureNameFilter,
    FilteringParameters,
    OrderingParameters,
    PaginationParameters,
    SearchFilter,
)
from app.services.filter_registry import FilterHandlerRegistry
from app.services.logs import LogsQueryService, get_log_by_id, get_logs, to_log_dto
from app.services.project_instances import ProjectInstancesQueryService
from app.services.query_service import CancellationToken, QueryOptions, _normalize_field_name
from app.models.project_instance import ProjectInstance
from tests.base import EDITOR_CLAIMS, DataManagerTestBase

_T0 = datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)


def _started(row) -> datetime:
    value = row.started_at
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class FieldNameNormalizationTests(unittest.TestCase):
    def test_pascal_and_snake_case_resolve_to_columns(self):
        self.assertEqual(_normalize_field_name("StartedAt"), "started_at")
        self.assertEqual(_normalize_field_name("started_at"), "started_at")
        self.assertEqual(_normalize_field_name("errorMessage"), "error_message")
        self.assertEqual(_normalize_field_name(""), "")


class LogsQueryServiceTests(DataManagerTestBase):
    def setUp(self):
        super().setUp()
        self.logs = [
            self.add_log(
                started_at=_T0 + timedelta(minutes=i),
                status="Failed" if i % 5 == 0 else "Succeeded",
                details=f"delivery #{i}",
            )
            for i in range(55)
        ]

    def _root(self) -> LogsQueryService:
        return LogsQueryService(self.db, authorization=self.authorization())

    def _editor(self) -> LogsQueryService:
        return LogsQueryService(self.db, authorization=self.authorization(EDITOR_CLAIMS))

    def test_second_page_for_root_caller(self):
        request = GetLogsQuery(
            ordering=OrderingParameters(order_by="StartedAt"),
            pagination=PaginationParameters(page_number=2, page_size=20),
        )
        result = get_logs(self._root(), request)
        self.assertEqual(result.total_items, 55)
        self.assertEqual(len(result.items), 20)
        self.assertEqual(result.page_number, 2)
        self.assertEqual(result.total_pages, 3)
        self.assertEqual([item.id for item in result.items], [log.id for log in self.logs[20:40]])

    def test_second_page_in_default_order(self):
        request = GetLogsQuery(pagination=PaginationParameters(page_number=2, page_size=20))
        result = get_logs(self._root(), request)
        self.assertEqual(result.total_items, 55)
        self.assertEqual(len(result.items), 20)
        self.assertEqual(result.total_pages, 3)

        first = get_logs(self._root(), GetLogsQuery(pagination=PaginationParameters(page_number=1, page_size=20)))
        last = get_logs(self._root(), GetLogsQuery(pagination=PaginationParameters(page_number=3, page_size=20)))
        self.assertEqual(len(last.items), 15)
        seen = [item.id for page in (first, result, last) for item in page.items]
        self.assertEqual(len(set(seen)), 55)

    def test_same_request_for_non_root_caller_is_empty(self):
        request = GetLogsQuery(pagination=PaginationParameters(page_number=2, page_size=20))
        result = get_logs(self._editor(), request)
        self.assertEqual(result.total_items, 0)
        self.assertEqual(result.items, [])

    def test_service_without_authorization_fails_closed(self):
        result = get_logs(LogsQueryService(self.db), GetLogsQuery())
        self.assertEqual(result.total_items, 0)

    def test_non_root_search_stays_empty(self):
        request = GetLogsQuery(filtering=FilteringParameters(query_filters=[SearchFilter(search_term="delivery")]))
        self.assertEqual(get_logs(self._editor(), request).total_items, 0)

    def test_authorization_applies_to_caller_supplied_base_query(self):
        service = self._editor()
        query = service.prepare_query(query=self.db.query(Log).filter(true()))
        self.assertEqual(query.count(), 0)

    def test_total_is_independent_of_skip(self):
        service = self._root()
        filtering = FilteringParameters(query_filters=[SearchFilter(search_term="failed")])
        totals = set()
        for skip in (0, 3, 10, 11, 50):
            page_size = 4
            request = GetLogsQuery(filtering=filtering, pagination=PaginationParameters.from_skip(skip, page_size))
            result = get_logs(service, request)
            totals.add(result.total_items)
            self.assertEqual(len(result.items), min(page_size, max(0, result.total_items - skip)))
        self.assertEqual(totals, {11})

    def test_filters_are_conjunctive(self):
        service = self._root()
        request = GetLogsQuery(
            filtering=FilteringParameters(
                query_filters=[SearchFilter(search_term="failed"), SearchFilter(search_term="#1")]
            ),
            pagination=PaginationParameters.all_items(),
        )
        result = get_logs(service, request)
        expected = {
            log.id
            for log in self.logs
            if log.status == "Failed" and "#1" in (log.details or "")
        }
        self.assertEqual({item.id for item in result.items}, expected)
        self.assertEqual(result.total_items, len(expected))

    def test_blank_search_term_is_inactive(self):
        request = GetLogsQuery(filtering=FilteringParameters(query_filters=[SearchFilter(search_term="")]))
        self.assertEqual(get_logs(self._root(), request).total_items, 55)

    def test_descending_order_is_non_increasing(self):
        request = GetLogsQuery(
            ordering=OrderingParameters(order_by="StartedAt", order_direction="DESC"),
            pagination=PaginationParameters.all_items(),
        )
        items = get_logs(self._root(), request).items
        values = [_started(item) for item in items]
        self.assertEqual(len(values), 55)
        self.assertEqual(values, sorted(values, reverse=True))

    def test_unknown_order_field_is_ignored(self):
        request = GetLogsQuery(ordering=OrderingParameters(order_by="NoSuchColumn"))
        with self.assertLogs("app.query", level="WARNING"):
            result = get_logs(self._root(), request)
        self.assertEqual(result.total_items, 55)

    def test_get_by_id(self):
        service = self._root()
        found = get_log_by_id(service, self.logs[7].id)
        self.assertIsNotNone(found)
        self.assertEqual(found.details, "delivery #7")
        self.assertIsNone(get_log_by_id(service, uuid4()))
        self.assertIsNone(get_log_by_id(self._editor(), self.logs[7].id))

    def test_no_tracking_detaches_rows(self):
        with self.SessionLocal() as db:
            service = LogsQueryService(db, authorization=self.authorization())
            rows = service.list_all(QueryOptions(as_no_tracking=True))
            self.assertEqual(len(rows), 55)
            self.assertTrue(all(row not in db for row in rows))

            tracked = service.list_all(QueryOptions())
            self.assertTrue(all(row in db for row in tracked))

    def test_no_tracking_keeps_rows_the_session_already_tracks(self):
        edited = self.db.get(Log, self.logs[3].id)
        edited.details = "edited before listing"

        rows = self._root().list_all(QueryOptions(as_no_tracking=True))
        self.assertEqual(len(rows), 55)
        self.assertIn(edited, self.db)
        self.db.commit()

        with self.SessionLocal() as db:
            self.assertEqual(db.get(Log, self.logs[3].id).details, "edited before listing")

    def test_projection_runs_after_paging(self):
        calls = []

        def projector(row):
            calls.append(row.id)
            return to_log_dto(row)

        service = self._root()
        query = service.prepare_query(options=QueryOptions(ordering=OrderingParameters(order_by="started_at")))
        service.execute_paginated_query(query, PaginationParameters(page_number=1, page_size=5), projector)
        self.assertEqual(len(calls), 5)

    def test_cancelled_token_raises_before_any_result(self):
        token = CancellationToken()
        token.cancel()
        with self.assertRaises(OperationCancelled):
            get_logs(self._root(), GetLogsQuery(), token)
        with self.assertRaises(OperationCancelled):
            get_log_by_id(self._root(), self.logs[0].id, token)


class FilterDispatchTests(DataManagerTestBase):
    def test_missing_handler_surfaces_as_configuration_error(self):
        service = ProjectInstancesQueryService(self.db, registry=FilterHandlerRegistry())
        options = QueryOptions(filtering=FilteringParameters(query_filters=[SearchFilter(search_term="x")]))
        with self.assertRaises(FilterHandlerNotRegistered):
            service.prepare_query(options=options)

    def test_inactive_filter_needs_no_handler(self):
        service = ProjectInstancesQueryService(self.db, registry=FilterHandlerRegistry())
        options = QueryOptions(filtering=FilteringParameters(query_filters=[CultureNameFilter(value=" ")]))
        self.assertEqual(service.prepare_query(options=options).count(), 0)

    def test_supports_filter(self):
        service = ProjectInstancesQueryService(self.db)
        self.assertTrue(service.supports_filter(SearchFilter()))
        self.assertFalse(service.supports_filter(CultureNameFilter()))
        self.assertIs(service.model, ProjectInstance)
