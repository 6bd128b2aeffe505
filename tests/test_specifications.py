import unittest

from app.models.log import Log
from app.models.translation import Translation
from app.services.specifications import (
    LogSearchSpecification,
    Specification,
    TranslationSearchSpecification,
)
from tests.base import DataManagerTestBase


class SearchSpecificationInMemoryTests(unittest.TestCase):
    def test_match_is_case_insensitive_in_both_directions(self):
        log = Log(log_type="Webhook", action="Send", status="Failed", details="Hello World")
        self.assertTrue(LogSearchSpecification("hello").is_satisfied_by(log))
        self.assertTrue(LogSearchSpecification("WORLD").is_satisfied_by(log))
        self.assertFalse(LogSearchSpecification("planet").is_satisfied_by(log))

    def test_blank_term_matches_everything(self):
        log = Log(log_type="Webhook", action="Send", status="Failed")
        for term in (None, "", "   "):
            spec = LogSearchSpecification(term)
            self.assertTrue(spec.is_empty)
            self.assertTrue(spec.is_satisfied_by(log))

    def test_null_fields_never_match(self):
        translation = Translation(resource_name="Common", translation_name="Title", content="Title", internal_group_name1=None)
        self.assertFalse(TranslationSearchSpecification("none").is_satisfied_by(translation))

    def test_specifications_combine(self):
        log = Log(log_type="Email", action="Send", status="Failed")
        both = LogSearchSpecification("email") & LogSearchSpecification("failed")
        either = LogSearchSpecification("webhook") | LogSearchSpecification("send")
        self.assertTrue(both.is_satisfied_by(log))
        self.assertTrue(either.is_satisfied_by(log))
        self.assertFalse((LogSearchSpecification("webhook") & LogSearchSpecification("send")).is_satisfied_by(log))

    def test_base_specification_is_abstract(self):
        with self.assertRaises(NotImplementedError):
            Specification().to_expression()


class SearchSpecificationSqlTests(DataManagerTestBase):
    def _matching(self, spec):
        return {row.id for row in self.db.query(Log).filter(spec.to_expression()).all()}

    def test_sql_and_in_memory_agree(self):
        logs = [
            self.add_log(details="Hello World"),
            self.add_log(error_message="HELLO there"),
            self.add_log(target="https://example.com/hook"),
            self.add_log(status="Pending"),
        ]
        for term in ("hello", "WORLD", "example", "pend", "", "missing"):
            spec = LogSearchSpecification(term)
            expected = {log.id for log in logs if spec.is_satisfied_by(log)}
            self.assertEqual(self._matching(spec), expected, term)

    def test_like_wildcards_in_term_are_literal(self):
        literal = self.add_log(details="50% done")
        self.add_log(details="500 done")
        self.assertEqual(self._matching(LogSearchSpecification("50%")), {literal.id})

        underscore = self.add_log(details="a_b")
        self.add_log(details="axb")
        self.assertEqual(self._matching(LogSearchSpecification("a_b")), {underscore.id})
