"""Tests for structured reply validation."""

from __future__ import annotations

import json

import pytest
from fakes import VALID_REPLY, reply_json

from advisor_agent.errors import ValidationError
from advisor_agent.schemas import (
    INTENTS,
    NEXT_ACTIONS,
    ChatContext,
    StructuredReply,
    fallback_reply,
    reply_json_schema,
    validate_reply,
)


class TestValidateReply:
    def test_valid_reply_is_parsed(self):
        reply = validate_reply(reply_json())
        assert isinstance(reply, StructuredReply)
        assert reply.model_dump() == VALID_REPLY

    @pytest.mark.parametrize("intent", INTENTS)
    def test_every_intent_accepted(self, intent):
        assert validate_reply(reply_json(intent=intent)).intent == intent

    @pytest.mark.parametrize("action", NEXT_ACTIONS)
    def test_every_next_action_accepted(self, action):
        assert validate_reply(reply_json(next_action=action)).next_action == action

    def test_missing_fields_rejected(self):
        with pytest.raises(ValidationError):
            validate_reply('{"reply":"hi"}')

    def test_out_of_set_intent_rejected(self):
        with pytest.raises(ValidationError):
            validate_reply('{"reply":"hi","detected_language":"en","intent":"xyz","next_action":"none"}')

    def test_out_of_set_next_action_rejected(self):
        with pytest.raises(ValidationError):
            validate_reply(reply_json(next_action="call_back"))

    def test_extra_key_rejected(self):
        with pytest.raises(ValidationError):
            validate_reply(json.dumps({**VALID_REPLY, "confidence": 0.9}))

    def test_wrong_type_rejected(self):
        with pytest.raises(ValidationError):
            validate_reply(json.dumps({**VALID_REPLY, "reply": 42}))

    @pytest.mark.parametrize("raw", ["", "   ", "not json", "[1, 2]", '"just a string"', "{"])
    def test_non_object_rejected(self, raw):
        with pytest.raises(ValidationError):
            validate_reply(raw)

    def test_error_message_names_the_field(self):
        with pytest.raises(ValidationError, match="intent"):
            validate_reply(reply_json(intent="xyz"))


class TestFallbackReply:
    def test_fallback_is_unknown_and_none(self):
        reply = fallback_reply()
        assert reply.intent == "unknown"
        assert reply.next_action == "none"
        assert reply.reply

    def test_fallback_is_deterministic(self):
        assert fallback_reply() == fallback_reply()


class TestReplySchema:
    def test_schema_lists_enumerations(self):
        schema = reply_json_schema()
        for value in (*INTENTS, *NEXT_ACTIONS):
            assert value in schema


class TestChatContext:
    def test_annotates_language_and_stage(self):
        ctx = ChatContext(language="fr", stage="visitor")
        assert ctx.annotate("Bonjour") == "[System Context: Lang=fr, Stage=visitor] Bonjour"

    def test_language_only(self):
        assert ChatContext(language="en").annotate("Hi") == "[System Context: Lang=en] Hi"

    def test_empty_context_leaves_message_alone(self):
        assert ChatContext().annotate("Hi") == "Hi"
