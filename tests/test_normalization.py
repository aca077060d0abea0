"""Answer normalization on transient questions (no database)."""

from __future__ import annotations

import pytest

from surveyhub.app.services.intake import (
    ChoiceListValue,
    NumericValue,
    SubmittedAnswer,
    TextValue,
    collect_answers,
    is_blank,
    normalize_value,
    parse_question_id,
)
from surveyhub.db.models import Question, QuestionOption, QuestionType


def choice_question(qtype=QuestionType.multiple_choice, option_ids=(3, 5, 7), has_other=False) -> Question:
    return Question(
        id=10,
        text="Pick",
        question_type=qtype,
        has_other=has_other,
        options=[QuestionOption(id=i, text=f"opt {i}", position=n) for n, i in enumerate(option_ids)],
    )


class TestQuestionIds:
    @pytest.mark.parametrize("raw, expected", [
        (4, 4),
        ("4", 4),
        (" 12 ", 12),
        (4.0, 4),
        (4.5, None),
        ("abc", None),
        (None, None),
        (True, None),
    ])
    def test_parse(self, raw, expected):
        assert parse_question_id(raw) == expected

    def test_collect_drops_invalid_and_repeated(self):
        answers = collect_answers([(1, "a"), ("x", "b"), ("1", "c"), (2, None)])
        assert answers == [SubmittedAnswer(1, "a"), SubmittedAnswer(2, None)]


class TestBlank:
    @pytest.mark.parametrize("value", [None, "", "  \t", [], ["", " "]])
    def test_blank(self, value):
        assert is_blank(value)

    @pytest.mark.parametrize("value", ["x", 0, 0.0, [3], ["", "OTHER: x"]])
    def test_not_blank(self, value):
        assert not is_blank(value)


class TestChoiceValues:
    def test_comma_separated_ids(self):
        value = normalize_value(choice_question(), "3,5")
        assert value == ChoiceListValue(raw="3,5", option_ids=(3, 5), others=())

    def test_list_of_ids(self):
        value = normalize_value(choice_question(), [5, "7"])
        assert value == ChoiceListValue(raw="5,7", option_ids=(5, 7), others=())

    def test_single_integer(self):
        value = normalize_value(choice_question(QuestionType.single_choice), 3)
        assert value.option_ids == (3,)
        assert value.raw == "3"

    def test_repeated_id_selects_once(self):
        assert normalize_value(choice_question(), "3, 3,5").option_ids == (3, 5)

    def test_unknown_and_malformed_tokens_are_skipped(self):
        value = normalize_value(choice_question(), "3,99,abc,")
        assert value.option_ids == (3,)
        assert value.raw == "3,99,abc,"

    def test_other_token(self):
        value = normalize_value(choice_question(QuestionType.single_choice, has_other=True), "OTHER: snow")
        assert value == ChoiceListValue(raw="OTHER: snow", option_ids=(), others=("OTHER: snow",))

    def test_other_without_has_other_is_still_kept_in_raw(self, caplog):
        value = normalize_value(choice_question(has_other=False), "5,OTHER:hail")
        assert value.option_ids == (5,)
        assert value.others == ("OTHER:hail",)
        assert "no 'other' choice" in caplog.text

    def test_legacy_alias_is_a_choice_type(self):
        question = choice_question(QuestionType("multi_select"))
        assert isinstance(normalize_value(question, "3"), ChoiceListValue)


class TestScalarValues:
    def test_text(self):
        question = Question(id=1, text="Why", question_type=QuestionType.text, options=[])
        assert normalize_value(question, "because") == TextValue(raw="because")

    def test_missing_value_becomes_empty_string(self):
        question = Question(id=1, text="Why", question_type=QuestionType.text, options=[])
        assert normalize_value(question, None) == TextValue(raw="")

    @pytest.mark.parametrize("raw, number, text", [
        (4, 4, "4"),
        ("4", 4, "4"),
        ("2.5", 2.5, "2.5"),
        (3.0, 3.0, "3"),
    ])
    def test_numbers(self, raw, number, text):
        question = Question(id=1, text="Score", question_type=QuestionType.rating, options=[])
        assert normalize_value(question, raw) == NumericValue(number=number, raw=text)

    def test_unparseable_number_is_kept_as_text(self):
        question = Question(id=1, text="Count", question_type=QuestionType.number, options=[])
        assert normalize_value(question, "many") == TextValue(raw="many")

    def test_date_is_stored_verbatim(self):
        question = Question(id=1, text="When", question_type=QuestionType.date, options=[])
        assert normalize_value(question, "2026-03-01") == TextValue(raw="2026-03-01")
