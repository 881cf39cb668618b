import pytest

from agentloop.parsing import Invocation, parse


def test_parse_empty_and_plain_text_yield_nothing():
    assert parse("") == []
    assert parse("I am thinking about what to do next.") == []


def test_parse_single_tag_with_payload():
    invocations = parse("<read-file>/tmp/a.txt</read-file>")

    assert len(invocations) == 1
    assert invocations[0].action == "read-file"
    assert invocations[0].attributes is None
    assert invocations[0].payload == "/tmp/a.txt"


def test_parse_attributes_without_payload():
    invocations = parse('<cmd attr="x"></cmd>')

    assert len(invocations) == 1
    assert invocations[0].attributes == {"attr": "x"}
    assert invocations[0].payload is None


def test_parse_space_without_valid_pairs_gives_empty_attributes():
    invocations = parse("<cmd garbage>payload</cmd>")

    assert invocations[0].attributes == {}
    assert invocations[0].payload == "payload"


def test_parse_multiple_attributes_and_trims_payload():
    text = '<save-memory key="hosts"   scope="run" >\n  localhost is 127.0.0.1  \n</save-memory>'

    invocations = parse(text)

    assert invocations[0].attributes == {"key": "hosts", "scope": "run"}
    assert invocations[0].payload == "localhost is 127.0.0.1"


def test_parse_duplicate_attribute_keys_keep_last():
    invocations = parse('<cmd k="1" k="2">x</cmd>')

    assert invocations[0].attributes == {"k": "2"}


def test_parse_whitespace_payload_is_absent():
    invocations = parse("<task-complete>   \n </task-complete>")

    assert invocations[0].payload is None


def test_parse_nested_markup_is_not_captured_as_payload():
    invocations = parse("<think><read-file>/etc/hosts</read-file></think>")

    assert len(invocations) == 1
    assert invocations[0].action == "think"
    assert invocations[0].payload is None


def test_parse_skips_unterminated_tag_and_keeps_scanning():
    text = "<read-file>/a.txt <update-goal>find the hosts file</update-goal>"

    invocations = parse(text)

    assert [inv.action for inv in invocations] == ["update-goal"]
    assert invocations[0].payload == "find the hosts file"


def test_parse_stray_angle_brackets_are_ignored():
    text = "if a < b and c > d then <wait>3</wait> else 2 <> 1"

    invocations = parse(text)

    assert [inv.canonical for inv in invocations] == ["<wait>3</wait>"]


def test_parse_keeps_order_and_surrounding_noise():
    text = (
        "Sure! First <add-plan-step>read the file</add-plan-step> then "
        "<read-file>/tmp/a.txt</read-file> and finally done."
    )

    invocations = parse(text)

    assert [inv.action for inv in invocations] == ["add-plan-step", "read-file"]


def test_parse_closing_tag_is_searched_after_opening_tag():
    # the closing tag appears before the opening one and must not be matched
    text = "</x> <x>value</x>"

    invocations = parse(text)

    assert len(invocations) == 1
    assert invocations[0].payload == "value"


def test_parse_unescaped_quote_in_attribute_does_not_raise():
    invocations = parse('<cmd a="say "hi"" b="2">x</cmd>')

    assert len(invocations) == 1
    assert invocations[0].attributes is not None
    assert invocations[0].payload == "x"


@pytest.mark.parametrize(
    "text",
    [
        "<",
        ">",
        "<<<<",
        "<a",
        "<a>",
        "<a>unterminated",
        "</a>",
        '<a b="c>',
        "< a>x</ a>",
        "<a b>x</a",
        "<a>x</a><b>y</b",
        '<a k="v" k2=">x</a>',
    ],
)
def test_parse_is_total_and_bounded(text: str):
    invocations = parse(text)

    assert len(invocations) <= text.count("<")


def test_parse_end_to_end_duplicates_share_canonical_form():
    text = "<read-file>/tmp/a.txt</read-file> noise <read-file>/tmp/a.txt</read-file>"

    invocations = parse(text)

    assert len(invocations) == 2
    assert invocations[0].canonical == invocations[1].canonical


def test_canonical_form_reparses_to_same_invocation():
    invocation = Invocation("save-memory", {"key": "hosts", "kind": "note"}, "localhost")

    reparsed = parse(invocation.canonical)

    assert len(reparsed) == 1
    assert reparsed[0].action == invocation.action
    assert reparsed[0].attributes == invocation.attributes
    assert reparsed[0].payload == invocation.payload


def test_empty_attribute_mapping_survives_reparse():
    invocation = Invocation("cmd", {}, "x")

    reparsed = parse(invocation.canonical)

    assert len(reparsed) == 1
    assert reparsed[0].attributes == {}
    assert reparsed[0].payload == "x"
    assert reparsed[0] == invocation
