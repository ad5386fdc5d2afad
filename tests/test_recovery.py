# tests/test_recovery.py
"""End-to-end tests for recovering typed values from model output."""

import time
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import pytest
from pydantic import BaseModel, Field


class Person(BaseModel):
    name: str
    age: int
    city: str
    zip: Optional[str] = None


class PersonWithNestedJson(BaseModel):
    name: str
    age: int
    city: str
    tags: str


class TagResult(BaseModel):
    tags: list[str]


class OptionalTagResult(BaseModel):
    tags: Optional[list[str]] = None


class ExplanationOutput(BaseModel):
    neutralExplanation: str
    manSplaining: str


class Inner(BaseModel):
    x: int


class Outer(BaseModel):
    inner: Inner


class Counter(BaseModel):
    value: int


class Foo(BaseModel):
    foo: str


class Loop(BaseModel):
    next: Optional["Loop"] = None


class Holder(BaseModel):
    n: int


class Address(BaseModel):
    street: str = "unknown"


class Profile(BaseModel):
    name: str = "anon"
    age: int
    address: Address = Field(default_factory=Address)


def _john(person, age=30, city="New York"):
    assert person is not None
    assert person.name == "John"
    assert person.age == age
    assert person.city == city


class TestDirectDecode:

    def test_valid_document_is_returned_directly(self):
        from schemamend.recovery import recover

        result = recover('{"name": "John", "age": 30, "city": "New York", "zip": "10001"}', Person)
        assert result.ok
        assert result.source == "direct"
        assert result.candidate is None
        assert result.attempts == []
        assert result.value == Person(name="John", age=30, city="New York", zip="10001")

    def test_mixed_escaping_is_untouched(self):
        from schemamend.recovery import recover

        raw = r'{"tags": ["escaped\"quote", "back\\slash", "éø", "tab\there", "new\nline"]}'
        result = recover(raw, TagResult)
        assert result.source == "direct"
        assert result.value.tags == ['escaped"quote', "back\\slash", "éø", "tab\there", "new\nline"]


class TestCandidateRecovery:

    def test_string_number_is_repaired(self):
        from schemamend.recovery import recover

        result = recover('{"name": "John", "age": "30", "city": "New York"}', Person)
        assert result.ok
        assert result.source == "candidate"
        _john(result.value)
        assert [a.index for a in result.attempts] == [-1]
        assert result.attempts[0].stage == "decode"

    def test_prose_and_markdown_wrapper(self):
        from schemamend.recovery import recover

        raw = (
            "John? Sure I know John!\n"
            "I can even respond in json ({}) and markdown for you, like you asked!\n"
            "```\n"
            '{\n    "name": "John",\n    "age": "31",\n    "city": "Baltimore"\n}\n'
            "```\n\nHe might have moved tho"
        )
        result = recover(raw, Person)
        assert result.ok
        _john(result.value, age=31, city="Baltimore")
        assert result.candidate.startswith("{\n")

    def test_last_document_wins_after_reasoning(self):
        from schemamend.recovery import recover

        raw = (
            "<think>\n"
            "The user wants John's details. Maybe {\"name\": \"John\", \"age\": \"29\", \"city\": \"Boston\"}?\n"
            "No wait, he moved.\n"
            "</think>\n"
            'Final answer: {"name": "John", "age": "30", "city": "New York"}'
        )
        result = recover(raw, Person)
        _john(result.value)

    def test_earlier_candidate_used_when_last_fails(self):
        from schemamend.recovery import recover

        raw = 'Answer: {"name": "John", "age": "30", "city": "New York"} Note: [1, 2]'
        result = recover(raw, Person)
        _john(result.value)
        assert result.candidate == '{"name": "John", "age": "30", "city": "New York"}'
        assert [(a.index, a.stage) for a in result.attempts] == [(-1, "decode"), (2, "coerce")]

    def test_csv_tags_from_second_document(self):
        from schemamend.recovery import recover

        result = recover('{bad-shape} then {"tags":"a,b,c"}', TagResult)
        assert result.ok
        assert result.value.tags == ["a", "b", "c"]
        assert result.candidate == '{"tags":"a,b,c"}'

    def test_escaped_quotes_and_backslashes(self):
        from schemamend.recovery import recover

        raw = r'Here: {"name": "John \"Johnny\" Doe", "age": "30", "city": "New York\\Brooklyn"}'
        result = recover(raw, Person)
        assert result.value.name == 'John "Johnny" Doe'
        assert result.value.city == "New York\\Brooklyn"

    def test_unicode_escapes(self):
        from schemamend.recovery import recover

        raw = r'{"name": "J\u00f6hn D\u00f8e", "age": "30", "city": "N\u00e9w Y\u00f8rk"}'
        result = recover(raw, Person)
        assert result.value.name == "Jöhn Døe"
        assert result.value.city == "Néw Yørk"

    def test_special_character_escapes(self):
        from schemamend.recovery import recover

        raw = r'{"name": "John\tDoe\nSmith", "age": "30", "city": "New\rYork\b"}'
        result = recover(raw, Person)
        assert result.value.name == "John\tDoe\nSmith"
        assert result.value.city == "New\rYork\b"

    def test_embedded_json_strings_stay_strings(self):
        from schemamend.recovery import recover

        raw = (
            '{"name": "{\\"first\\": \\"John\\"}", "age": "30", "city": "New York", '
            '"tags": "[\\"a\\", \\"b\\"]"}'
        )
        result = recover(raw, PersonWithNestedJson)
        assert result.value.name == '{"first": "John"}'
        assert result.value.tags == '["a", "b"]'
        assert result.value.age == 30

    def test_number_for_string_and_null(self):
        from schemamend.recovery import recover

        assert recover('{"name": "John", "age": "30", "city": "NY", "zip": 1234}', Person).value.zip == "1234"
        assert recover('{"name": "John", "age": "30", "city": "NY", "zip": null}', Person).value.zip is None

    def test_case_insensitive_keys(self):
        from schemamend.recovery import recover

        result = recover('{"NAME": "John", "Age": "30", "CITY": "New York"}', Person)
        _john(result.value)

    def test_stringified_nested_object(self):
        from schemamend.recovery import recover

        result = recover('{"inner": "{\\"x\\": \\"1\\"}"}', Outer)
        assert result.value == Outer(inner=Inner(x=1))

    def test_null_properties_fall_back_to_defaults(self):
        from schemamend.recovery import recover

        result = recover('Result: {"name": null, "age": "30", "address": null}', Profile)
        assert result.ok
        assert result.value == Profile(name="anon", age=30, address=Address())

    def test_optional_array_as_string(self):
        from schemamend.recovery import recover

        result = recover('{"tags": "[\\"tag1\\", \\"tag2\\"]"}', OptionalTagResult)
        assert result.value.tags == ["tag1", "tag2"]


class TestEchoedSchemaRecovery:

    def test_content_inside_echoed_schema(self):
        from schemamend.recovery import recover

        raw = """{
  "$schema": "http://json-schema.org/draft-07/schema#",
  "type": "object",
  "properties": {
    "neutralExplanation": {"type": "string", "content": "Water boils at 100 C at sea level."},
    "manSplaining": {"type": "string", "content": "Well, actually, it is about pressure."}
  },
  "required": ["neutralExplanation", "manSplaining"],
  "additionalProperties": false
}"""
        result = recover(raw, ExplanationOutput)
        assert result.ok
        assert result.value.neutralExplanation == "Water boils at 100 C at sea level."
        assert result.value.manSplaining == "Well, actually, it is about pressure."

    def test_plain_values_inside_echoed_schema(self):
        from schemamend.recovery import recover

        raw = (
            '{"$schema": "http://json-schema.org/draft-07/schema#", "properties": '
            '{"neutralExplanation": "It rains.", "manSplaining": "Clouds, basically."}}'
        )
        result = recover(raw, ExplanationOutput)
        assert result.value == ExplanationOutput(neutralExplanation="It rains.", manSplaining="Clouds, basically.")

    def test_minimal_echo(self):
        from schemamend.recovery import recover

        result = recover('{"$schema": "x", "properties": {"foo": {"content": "bar"}}}', Foo)
        assert result.ok
        assert result.value == Foo(foo="bar")


class TestBuiltInTargets:

    @pytest.mark.parametrize("raw,target,expected", [
        ("true", bool, True),
        ('"true"', bool, True),
        ('"yes"', bool, True),
        ("true", str, "true"),
        ("1234", int, 1234),
        ("1234", str, "1234"),
        ('"1234"', int, 1234),
        ('"1234"', float, 1234.0),
        ('"1234"', list[str], ["1234"]),
        ('"1234,5678"', list[str], ["1234", "5678"]),
        ('["1234", "5678"]', list[str], ["1234", "5678"]),
        ('"1234,5678"', list[int], [1234, 5678]),
        ("[1234, 5678]", list[str], ["1234", "5678"]),
    ])
    def test_scalar_and_array_mapping(self, raw, target, expected):
        from schemamend.recovery import recover

        result = recover(raw, target)
        assert result.ok
        assert result.value == expected
        assert type(result.value) is type(expected)


class TestFailures:

    @pytest.mark.parametrize("raw", ["", "   ", "I don't know what you mean.", "Sure! {not json at all}"])
    def test_unrecoverable_text(self, raw):
        from schemamend.recovery import recover

        result = recover(raw, Person)
        assert not result
        assert result.ok is False
        assert result.value is None
        assert result.attempts
        assert result.attempts[0].index == -1

    def test_wrong_shape_everywhere(self):
        from schemamend.recovery import recover

        result = recover('Options: ["a"] or ["b"]', Person)
        assert not result.ok
        stages = {a.stage for a in result.attempts}
        assert "coerce" in stages

    def test_oversized_input_is_not_scanned(self):
        from schemamend.config import SchemamendConfig
        from schemamend.recovery import recover

        config = SchemamendConfig(max_input_chars=10)
        result = recover('{"name": "John", "age": 30, "city": "NY"}', Person, config=config)
        assert not result.ok
        assert [a.to_dict() for a in result.attempts] == [
            {"index": -1, "stage": "extract", "error": "input exceeds max_input_chars"},
        ]

    def test_candidate_limit_keeps_last(self):
        from schemamend.config import SchemamendConfig
        from schemamend.recovery import recover

        raw = 'x {"name": "John", "age": 30, "city": "NY"} then [1]'
        assert recover(raw, Person).ok
        assert not recover(raw, Person, config=SchemamendConfig(max_candidates=1)).ok

    def test_oversized_number_text_is_not_an_exception(self):
        from schemamend.errors import FinalDecodeFailure
        from schemamend.recovery import RecoveryResult, recover

        class RecordingDecoder:
            def __init__(self):
                self.seen = []

            def decode(self, json_text):
                self.seen.append(json_text)
                raise FinalDecodeFailure("rejected")

        digits = "9" * 5000
        decoder = RecordingDecoder()
        result = recover('x {"n": "' + digits + '"} y', Holder, decoder=decoder)
        assert isinstance(result, RecoveryResult)
        assert not result.ok
        assert '{"n":' + digits + "}" in decoder.seen

    def test_oversized_number_with_default_decoder(self):
        from schemamend.recovery import RecoveryResult, recover

        result = recover('x {"n": "' + "9" * 5000 + '"} y', Holder)
        assert isinstance(result, RecoveryResult)

    def test_unclosed_run_near_input_ceiling(self):
        from schemamend.recovery import recover

        started = time.perf_counter()
        result = recover("[" * 999_000, Holder)
        assert not result.ok
        assert time.perf_counter() - started < 10.0

    def test_schema_definition_error_propagates(self):
        from schemamend.errors import SchemaDefinitionError
        from schemamend.recovery import recover

        with pytest.raises(SchemaDefinitionError):
            recover("{}", Loop)


class TestEntryPoints:

    def test_try_recover(self):
        from schemamend.recovery import try_recover

        ok, value = try_recover('{"name": "John", "age": "30", "city": "New York"}', Person)
        assert ok is True
        _john(value)
        assert try_recover("nothing here", Person) == (False, None)

    def test_recover_value(self):
        from schemamend.recovery import recover_value

        assert recover_value('{"tags": "x,y"}', TagResult).tags == ["x", "y"]
        assert recover_value("nothing", TagResult) is None

    def test_schema_override(self):
        from schemamend.recovery import recover

        raw = '{"value": "5"}'
        assert recover(raw, Counter).value == Counter(value=5)
        override = {"type": "object", "properties": {"value": {"type": "string"}}}
        assert not recover(raw, Counter, schema=override).ok

    def test_custom_decoder_is_used_as_oracle(self):
        from schemamend.errors import FinalDecodeFailure
        from schemamend.recovery import recover

        class RejectingDecoder:
            def __init__(self):
                self.seen = []

            def decode(self, json_text):
                self.seen.append(json_text)
                raise FinalDecodeFailure("rejected")

        decoder = RejectingDecoder()
        result = recover('{"name": "x", "AGE": "1"}', Person, decoder=decoder)
        assert not result.ok
        assert decoder.seen == ['{"name": "x", "AGE": "1"}', '{"name":"x","age":1}']

    def test_recovery_is_reusable_across_threads(self):
        from schemamend.recovery import Recovery

        recovery = Recovery(Person)
        raws = [f'reply {i}: {{"name": "John", "age": "{i}", "city": "NY"}}' for i in range(32)]
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(recovery.run, raws))
        assert [r.value.age for r in results] == list(range(32))
