"""Tests for the delegation sentinel"""

from agentflow.agents import Delegation, format_delegation, parse_delegation


class TestParseDelegation:
    def test_plain_reply_has_no_delegation(self):
        assert parse_delegation("Here is my final answer.") is None

    def test_empty_reply(self):
        assert parse_delegation("") is None

    def test_simple_delegation(self):
        assert parse_delegation("DELEGATE_TO:writer:Draft the intro") == Delegation(
            "writer", "Draft the intro"
        )

    def test_delegation_on_a_later_line(self):
        reply = "I need help with this.\nDELEGATE_TO:researcher:Find sources\nThanks"

        delegation = parse_delegation(reply)

        assert delegation.sub_agent_id == "researcher"
        assert delegation.task == "Find sources"

    def test_whitespace_tolerant(self):
        delegation = parse_delegation("   DELEGATE_TO:  writer  :   Draft it  ")

        assert delegation.sub_agent_id == "writer"
        assert delegation.task == "Draft it"

    def test_task_keeps_colons(self):
        delegation = parse_delegation("DELEGATE_TO:helper:Time: 10:30, place: here")

        assert delegation.sub_agent_id == "helper"
        assert delegation.task == "Time: 10:30, place: here"

    def test_first_match_wins(self):
        reply = "DELEGATE_TO:a:first task\nDELEGATE_TO:b:second task"
        assert parse_delegation(reply).sub_agent_id == "a"

    def test_sentinel_must_start_the_line(self):
        assert parse_delegation("Please reply with DELEGATE_TO:a:task") is None

    def test_missing_task_is_not_a_delegation(self):
        assert parse_delegation("DELEGATE_TO:writer") is None


def test_format_round_trips_through_parse():
    text = format_delegation("writer", "Summarize: the findings")
    assert parse_delegation(text) == Delegation("writer", "Summarize: the findings")
