from datetime import datetime

import pytest

from domain.services.assistant_replies import ReplyCategory, classify, synthesize_reply, extract_keywords


@pytest.mark.parametrize(
    "text, category",
    [
        ("hello there", ReplyCategory.GREETING),
        ("Hi", ReplyCategory.GREETING),
        ("Hey, goodbye", ReplyCategory.GREETING),
        ("What can you do?", ReplyCategory.CAPABILITIES),
        ("could you help me with rent", ReplyCategory.CAPABILITIES),
        ("thanks a lot, bye", ReplyCategory.THANKS),
        ("ok goodbye for now", ReplyCategory.FAREWELL),
        ("how is the weather outside", ReplyCategory.WEATHER),
        ("what time is it", ReplyCategory.TIME),
        ("what is the date", ReplyCategory.DATE),
    ],
)
def test_first_matching_category_wins(text: str, category: str) -> None:
    assert classify(text) == category


@pytest.mark.parametrize("text", ["hiya", "heyyy there", "Hello!"])
def test_greeting_matches_word_prefix(text: str) -> None:
    assert classify(text) == ReplyCategory.GREETING


def test_classification_is_deterministic() -> None:
    results = {classify("hello there") for _ in range(20)}
    assert results == {ReplyCategory.GREETING}


def test_greeting_reply_mentions_specialty() -> None:
    category, reply = synthesize_reply("hi", "plumbing")
    assert category == ReplyCategory.GREETING
    assert reply.startswith("Hello there!")
    assert "plumbing assistant" in reply


def test_capabilities_reply_for_general_assistant() -> None:
    _, reply = synthesize_reply("what can you do", None)
    assert "wide range of topics" in reply


def test_short_unmatched_message_asks_for_details() -> None:
    category, reply = synthesize_reply("leaky pipe", "plumbing")
    assert category == ReplyCategory.CLARIFY
    assert '"leaky pipe"' in reply


def test_keywords_extracted_from_long_words() -> None:
    text = "my kitchen sink drains very slowly again"
    assert extract_keywords(text) == ["kitchen", "drains", "slowly"]

    category, reply = synthesize_reply(text, "plumbing")
    assert category == ReplyCategory.KEYWORDS
    assert "kitchen, drains, slowly" in reply
    assert "plumbing assistant" in reply


def test_generic_reply_without_keywords() -> None:
    category, reply = synthesize_reply("is it ok to do so", "leasing")
    assert category == ReplyCategory.GENERIC
    assert "leasing topics" in reply


def test_time_and_date_use_given_clock() -> None:
    now = datetime(2024, 3, 5, 14, 7)
    assert synthesize_reply("what time is it", now=now)[1] == "The current time is 2:07 PM."
    assert synthesize_reply("what is the date", now=now)[1] == "Today is March 05, 2024."
