import unittest

from sqlalchemy import true

from app.core.errors import ConfigurationError, FilterHandlerNotRegistered
from app.main import QUERY_SERVICES, validate_filter_wiring
from app.models.log import Log
from app.models.translation import Translation
from app.schemas.query import CultureNameFilter, NotFilledFilter, SearchFilter
from app.services.filter_registry import FilterHandlerRegistry, filter_registry


class FilterHandlerRegistryTests(unittest.TestCase):
    def test_registered_handler_is_invoked_with_the_filter(self):
        registry = FilterHandlerRegistry()
        seen = []

        @registry.handler(Log, SearchFilter)
        def _search(flt):
            seen.append(flt)
            return true()

        flt = SearchFilter(search_term="x")
        registry.get_filter_expression(Log, flt)
        self.assertEqual(seen, [flt])
        self.assertTrue(registry.has_handler(Log, SearchFilter))
        self.assertEqual(set(registry.handlers_for(Log)), {SearchFilter})

    def test_missing_pair_raises_configuration_error(self):
        registry = FilterHandlerRegistry()
        registry.register(Translation, SearchFilter, lambda flt: true())
        with self.assertRaises(FilterHandlerNotRegistered) as ctx:
            registry.get_filter_expression(Log, SearchFilter(search_term="x"))
        self.assertIsInstance(ctx.exception, ConfigurationError)
        self.assertIs(ctx.exception.model, Log)
        self.assertIs(ctx.exception.filter_type, SearchFilter)

    def test_duplicate_registration_is_rejected(self):
        registry = FilterHandlerRegistry()
        registry.register(Log, SearchFilter, lambda flt: true())
        with self.assertRaises(ConfigurationError):
            registry.register(Log, SearchFilter, lambda flt: true())

    def test_ensure_registered_reports_first_missing_filter(self):
        registry = FilterHandlerRegistry()
        registry.register(Translation, SearchFilter, lambda flt: true())
        with self.assertRaises(FilterHandlerNotRegistered) as ctx:
            registry.ensure_registered(Translation, (SearchFilter, CultureNameFilter, NotFilledFilter))
        self.assertIs(ctx.exception.filter_type, CultureNameFilter)

    def test_application_wiring_covers_every_supported_filter(self):
        validate_filter_wiring()
        for service_cls in QUERY_SERVICES:
            for filter_type in service_cls.supported_filters:
                self.assertTrue(filter_registry.has_handler(service_cls.model, filter_type))

    def test_logs_do_not_accept_translation_filters(self):
        self.assertFalse(filter_registry.has_handler(Log, CultureNameFilter))
