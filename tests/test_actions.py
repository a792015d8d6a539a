import pytest

from agents.actions import (
    ActionEnvelope,
    ClassificationError,
    NavigateAction,
    SearchGoogleAction,
    UberAction,
    UberConfirmAction,
    UnknownAction,
    action_from_payload,
    parse_classified_action,
)


def test_navigate_payload():
    action = parse_classified_action('{"action": "NAVIGATE", "target": "maxilinks", "narration": "Opening Maxilinks."}')
    assert isinstance(action, NavigateAction)
    assert action.target == "maxilinks"
    assert action.narration == "Opening Maxilinks."


def test_fenced_output_with_prose_is_accepted():
    raw = 'Sure!\n```json\n{"action": "SEARCH_GOOGLE", "search_term": "ai trends", "narration": "On it."}\n```'
    action = parse_classified_action(raw)
    assert isinstance(action, SearchGoogleAction)
    assert action.search_term == "ai trends"


@pytest.mark.parametrize("key", ["searchTerm", "search_query", "query"])
def test_search_term_aliases(key):
    action = parse_classified_action({"action": "SEARCH_GOOGLE", key: "weather"})
    assert isinstance(action, SearchGoogleAction)
    assert action.search_term == "weather"


def test_legacy_tag_and_response_text():
    action = parse_classified_action('{"action": "GOOGLE_SEARCH", "search_query": "news", "response_text": "Searching."}')
    assert isinstance(action, SearchGoogleAction)
    assert action.search_term == "news"
    assert action.narration == "Searching."


@pytest.mark.parametrize("tag", ["EXPLAIN", "SCROLL", "DANCE", ""])
def test_unsupported_tags_become_unknown_with_narration(tag):
    action = parse_classified_action({"action": tag, "narration": "This page is about hotels."})
    assert isinstance(action, UnknownAction)
    assert action.narration == "This page is about hotels."


def test_invalid_variant_fields_become_unknown():
    action = parse_classified_action('{"action": "NAVIGATE", "target": "", "narration": "Going."}')
    assert isinstance(action, UnknownAction)
    assert action.narration == "Going."


def test_null_fields_fall_back_to_defaults():
    action = parse_classified_action('{"action": "UBER_INIT", "destination": null, "narration": null}')
    assert isinstance(action, UberAction)
    assert action.action == "UBER_INIT"
    assert action.destination == ""
    assert action.narration == ""


def test_uber_variants():
    dest = action_from_payload({"action": "uber_enter_dest", "destination": "the airport"})
    assert isinstance(dest, UberAction)
    assert dest.action == "UBER_ENTER_DEST"
    assert dest.destination == "the airport"
    assert isinstance(action_from_payload({"action": "UBER_CONFIRM"}), UberConfirmAction)


def test_foreign_fields_are_ignored():
    action = parse_classified_action('{"action": "UBER_CONFIRM", "target": "google", "search_term": "x"}')
    assert isinstance(action, UberConfirmAction)
    assert not hasattr(action, "target")


def test_strings_containing_braces_do_not_confuse_extraction():
    raw = '{"action": "UNKNOWN", "narration": "Use {curly} braces freely."} trailing {junk'
    action = parse_classified_action(raw)
    assert action.narration == "Use {curly} braces freely."


@pytest.mark.parametrize("raw", ["no json here", "", '{"action": "NAVIGATE", "target": ', "[1, 2]"])
def test_undecodable_output_is_a_classification_error(raw):
    with pytest.raises(ClassificationError):
        parse_classified_action(raw)


def test_actions_are_immutable():
    action = NavigateAction(target="google")
    with pytest.raises(Exception):
        action.target = "uber"


def test_envelope_documents_response_format():
    instructions = ActionEnvelope.get_instructions()
    assert "RESPONSE FORMAT" in instructions
    for field in ("action", "target", "search_term", "destination", "narration"):
        assert f"**{field}**" in instructions
    assert "UBER_CONFIRM" in instructions
