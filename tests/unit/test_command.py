from unittest.mock import MagicMock

import pytest

from autopager.command import Command, CommandResult, OperationSpec
from autopager.confirmation import ConfirmImpact
from autopager.exceptions import ConfigurationError, InvalidSelectError
from autopager.models import IterationState
from autopager.strategies import MarkerStrategy, NextTokenStrategy, StrategyRegistry


@pytest.fixture
def list_tables_spec():
    return OperationSpec(
        name="ListTableMetadata",
        strategy="next_token",
        items_field="TableMetadataList",
        pass_thru_parameter="DatabaseName",
        service_max_page_size=50,
    )


def tables(*names, next_token=None):
    page = {"TableMetadataList": [{"Name": name} for name in names]}
    if next_token is not None:
        page["NextToken"] = next_token
    return page


class TestCommandSetup:
    def test_strategy_resolved_by_name(self, list_tables_spec, logger):
        command = Command(list_tables_spec, MagicMock(), logger=logger)
        assert isinstance(command.strategy, NextTokenStrategy)
        assert command.strategy.items_field == "TableMetadataList"

    def test_strategy_instance_used_as_is(self, logger):
        strategy = MarkerStrategy(items_field="XssMatchSets")
        spec = OperationSpec(name="ListXssMatchSets", strategy=strategy)
        command = Command(spec, MagicMock(), logger=logger)
        assert command.strategy is strategy

    def test_custom_registry(self, logger):
        registry = StrategyRegistry(logger=logger)
        registry.register_builtin_strategies()
        spec = OperationSpec(name="GetIdFormat", strategy="single_call")

        command = Command(spec, MagicMock(), logger=logger, registry=registry)

        assert command.registry is registry

    def test_spec_is_immutable(self, list_tables_spec):
        with pytest.raises(Exception):
            list_tables_spec.name = "Other"

    def test_named_strategy_needs_items_field(self, logger):
        with pytest.raises(
            ConfigurationError, match="Cannot build cursor strategy 'next_token'"
        ) as excinfo:
            Command(OperationSpec(name="DescribeThing"), MagicMock(), logger=logger)
        assert isinstance(excinfo.value.original_error, TypeError)

    def test_unknown_strategy_name(self, logger):
        spec = OperationSpec(name="ListThings", strategy="page_number", items_field="Items")
        with pytest.raises(ConfigurationError, match="not registered"):
            Command(spec, MagicMock(), logger=logger)

    def test_no_iterator_before_first_execute(self, list_tables_spec, logger):
        assert Command(list_tables_spec, MagicMock(), logger=logger).last_iterator is None


class TestCommandExecute:
    @pytest.mark.asyncio
    async def test_emits_items_from_every_page(self, list_tables_spec, logger, scripted_invoke):
        invoke = scripted_invoke(tables("a", "b", next_token="t1"), tables("c"))
        command = Command(list_tables_spec, invoke, logger=logger)

        result = await command.execute({"DatabaseName": "sales", "Expression": None})

        assert result.outputs == [{"Name": "a"}, {"Name": "b"}, {"Name": "c"}]
        assert result.next_token is None
        assert result.outcome.state == IterationState.SUCCEEDED
        assert invoke.requests[0] == {"DatabaseName": "sales"}
        assert invoke.requests[1] == {"DatabaseName": "sales", "NextToken": "t1"}

    @pytest.mark.asyncio
    async def test_limit_caps_requested_page_size(self, list_tables_spec, logger, scripted_invoke):
        invoke = scripted_invoke(tables(*"abcde", next_token="t1"), tables(*"fg", next_token="t2"))
        command = Command(list_tables_spec, invoke, logger=logger)

        result = await command.execute({"DatabaseName": "sales"}, limit=7)

        assert [r["MaxResults"] for r in invoke.requests] == [7, 2]
        assert len(result.outputs) == 7
        assert result.next_token == "t2"

    @pytest.mark.asyncio
    async def test_manual_paging_round_trips_cursor(
        self, list_tables_spec, logger, scripted_invoke
    ):
        command = Command(
            list_tables_spec, scripted_invoke(tables("a", next_token="t1==")), logger=logger
        )
        first = await command.execute({"DatabaseName": "sales"}, no_auto_iteration=True)

        invoke = scripted_invoke(tables("b", next_token="t2=="), tables("c"))
        command = Command(list_tables_spec, invoke, logger=logger)
        second = await command.execute({"DatabaseName": "sales"}, next_token=first.next_token)

        assert first.next_token == "t1=="
        assert invoke.call_count == 1
        assert invoke.requests[0]["NextToken"] == "t1=="
        assert second.outputs == [{"Name": "b"}]
        assert second.next_token == "t2=="

    @pytest.mark.asyncio
    async def test_select_whole_response(self, list_tables_spec, logger, scripted_invoke):
        pages = [tables("a", next_token="t1"), tables("b")]
        command = Command(list_tables_spec, scripted_invoke(*pages), logger=logger)

        result = await command.execute({"DatabaseName": "sales"}, select="*")

        assert result.outputs == pages

    @pytest.mark.asyncio
    async def test_parameter_echo_emitted_once_after_paging(
        self, list_tables_spec, logger, scripted_invoke
    ):
        invoke = scripted_invoke(tables("a", next_token="t1"), tables("b"))
        command = Command(list_tables_spec, invoke, logger=logger)

        result = await command.execute({"DatabaseName": "sales"}, pass_thru=True)

        assert invoke.call_count == 2
        assert result.outputs == ["sales"]

    @pytest.mark.asyncio
    async def test_failed_run_keeps_iterator_for_inspection(
        self, list_tables_spec, logger, scripted_invoke
    ):
        error = RuntimeError("throttled")
        invoke = scripted_invoke(tables("a", next_token="t1"), error)
        command = Command(list_tables_spec, invoke, logger=logger)
        seen = []

        with pytest.raises(RuntimeError) as excinfo:
            await command.execute({"DatabaseName": "sales"}, sink=seen.append)

        assert excinfo.value is error
        assert seen == [{"Name": "a"}]
        assert command.last_iterator.pages_emitted == 1
        assert command.last_iterator.outcome.state == IterationState.FAILED
        assert command.last_iterator.outcome.pages_delivered == 0

    @pytest.mark.asyncio
    async def test_caret_select(self, list_tables_spec, logger, scripted_invoke):
        command = Command(list_tables_spec, scripted_invoke(tables("a")), logger=logger)

        result = await command.execute({"DatabaseName": "sales"}, select="^DatabaseName")

        assert result.outputs == ["sales"]

    @pytest.mark.asyncio
    async def test_sink_receives_each_object(self, list_tables_spec, logger, scripted_invoke):
        command = Command(
            list_tables_spec,
            scripted_invoke(tables("a", next_token="t1"), tables("b")),
            logger=logger,
        )
        received = []

        async def sink(obj):
            received.append(obj)

        result = await command.execute({"DatabaseName": "sales"}, sink=sink)

        assert received == result.outputs == [{"Name": "a"}, {"Name": "b"}]

    @pytest.mark.asyncio
    async def test_error_propagates_unchanged(self, list_tables_spec, logger, scripted_invoke):
        error = RuntimeError("AccessDenied")
        command = Command(list_tables_spec, scripted_invoke(error), logger=logger)

        with pytest.raises(RuntimeError) as excinfo:
            await command.execute({"DatabaseName": "sales"}, limit=10)

        assert excinfo.value is error

    @pytest.mark.asyncio
    async def test_late_error_under_limit_returns_partial_result(
        self, list_tables_spec, logger, scripted_invoke
    ):
        command = Command(
            list_tables_spec,
            scripted_invoke(tables("a", "b", next_token="t1"), RuntimeError("Throttling")),
            logger=logger,
        )

        result = await command.execute({"DatabaseName": "sales"}, limit=10)

        assert result.outputs == [{"Name": "a"}, {"Name": "b"}]
        assert result.outcome.stopped_early
        assert result.next_token == "t1"

    @pytest.mark.asyncio
    async def test_invalid_select_raises_before_invoking(
        self, list_tables_spec, logger, scripted_invoke
    ):
        invoke = scripted_invoke()
        command = Command(list_tables_spec, invoke, logger=logger)

        with pytest.raises(InvalidSelectError):
            await command.execute({}, select="*", pass_thru=True)

        assert invoke.call_count == 0

    @pytest.mark.asyncio
    async def test_invalid_limit(self, list_tables_spec, logger, scripted_invoke):
        command = Command(list_tables_spec, scripted_invoke(), logger=logger)

        with pytest.raises(ConfigurationError):
            await command.execute({}, limit=-1)


class TestSingleCallOperations:
    @pytest.fixture
    def remove_member_spec(self):
        return OperationSpec(
            name="DisassociateMemberFromGroup",
            strategy="single_call",
            pass_thru_parameter="MemberId",
            impact=ConfirmImpact.HIGH,
            confirm_parameter="MemberId",
        )

    @pytest.mark.asyncio
    async def test_declined_confirmation_skips_call(
        self, remove_member_spec, logger, scripted_invoke
    ):
        invoke = scripted_invoke()
        command = Command(remove_member_spec, invoke, logger=logger)

        result = await command.execute(
            {"MemberId": "m-1", "GroupId": "g-1"}, prompt=lambda message: False
        )

        assert result == CommandResult(skipped=True)
        assert invoke.call_count == 0

    @pytest.mark.asyncio
    async def test_forced_call_returns_whole_response(
        self, remove_member_spec, logger, scripted_invoke
    ):
        invoke = scripted_invoke({})
        command = Command(remove_member_spec, invoke, logger=logger)

        result = await command.execute({"MemberId": "m-1", "GroupId": "g-1"}, force=True)

        assert invoke.call_count == 1
        assert result.outputs == [{}]
        assert result.next_token is None

    @pytest.mark.asyncio
    async def test_confirmed_pass_thru(self, remove_member_spec, logger, scripted_invoke):
        prompt = MagicMock(return_value=True)
        command = Command(remove_member_spec, scripted_invoke({}), logger=logger)

        result = await command.execute(
            {"MemberId": "m-1", "GroupId": "g-1"}, pass_thru=True, prompt=prompt
        )

        assert result.outputs == ["m-1"]
        prompt.assert_called_once()
        assert "m-1" in prompt.call_args[0][0]
