"""Tests for the search flow."""

import asyncio

import pytest

from simple_github.errors import InvalidQuery, NetworkError, Unauthenticated
from simple_github.schemas import RepoSearchResponse
from simple_github.services.search import SearchFlow


class FakeRepoApi:
    def __init__(self, responses=None, gates=None, errors=None):
        self.responses = responses or {}
        self.gates = gates or {}
        self.errors = errors or {}
        self.queries = []

    async def search_repositories(self, query):
        self.queries.append(query)
        if query in self.gates:
            await self.gates[query].wait()
        if query in self.errors:
            raise self.errors[query]
        return self.responses.get(query, RepoSearchResponse(total_count=0, items=[]))

    async def get_repository(self, owner, name):
        raise NotImplementedError


@pytest.fixture
def octocat_results(make_repo):
    items = [make_repo(f"octocat/repo-{i}") for i in range(3)]
    return RepoSearchResponse(total_count=3, items=items)


@pytest.fixture
def api(octocat_results, make_repo):
    return FakeRepoApi(
        responses={
            "octocat": octocat_results,
            "second": RepoSearchResponse(total_count=1, items=[make_repo("second/only")]),
        }
    )


@pytest.fixture
def flow(api, history):
    flow = SearchFlow(api, history)
    yield flow
    flow.close()


class TestSearchFlow:
    @pytest.mark.asyncio
    async def test_results_are_delivered_in_order(self, flow, octocat_results):
        state = await flow.search("octocat")

        assert state.status == "results"
        assert state.total_count == 3
        assert state.items == octocat_results.items
        assert flow.state.value == state
        assert flow.is_loading.value is False

    @pytest.mark.asyncio
    async def test_zero_matches_is_empty_result(self, flow):
        state = await flow.search("zzzznoresults")

        assert state.status == "empty"
        assert state.items == []
        assert state.message == "No search result"

    @pytest.mark.asyncio
    async def test_query_is_trimmed(self, flow, api):
        await flow.search("  octocat  ")
        assert api.queries == ["octocat"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["", "   ", None])
    async def test_blank_query_is_rejected_without_request(self, flow, api, query):
        with pytest.raises(InvalidQuery):
            flow.submit(query)
        assert api.queries == []
        assert flow.state.value.status == "idle"

    @pytest.mark.asyncio
    async def test_newer_search_supersedes_in_flight_one(self, history, make_repo, octocat_results):
        api = FakeRepoApi(
            responses={
                "octocat": octocat_results,
                "second": RepoSearchResponse(total_count=1, items=[make_repo("second/only")]),
            },
            gates={"octocat": asyncio.Event()},
        )
        flow = SearchFlow(api, history)
        states = flow.state.subscribe()

        first = flow.submit("octocat")
        await asyncio.sleep(0)
        second = flow.submit("second")
        result = await second

        assert first.cancelled()
        assert result.status == "results"
        assert [repo.full_name for repo in result.items] == ["second/only"]

        seen = []
        while True:
            state = await asyncio.wait_for(anext(states), 1)
            seen.append(state)
            if state.status == "results":
                break
        assert all(state.status != "results" or state.query == "second" for state in seen)
        assert flow.state.value.query == "second"
        flow.close()

    @pytest.mark.asyncio
    async def test_superseded_search_returns_none(self, history, octocat_results):
        api = FakeRepoApi(
            responses={"octocat": octocat_results},
            gates={"slow": asyncio.Event()},
        )
        flow = SearchFlow(api, history)

        pending = asyncio.create_task(flow.search("slow"))
        await asyncio.sleep(0)
        latest = await flow.search("octocat")

        assert await pending is None
        assert latest.status == "results"
        flow.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [NetworkError("offline"), Unauthenticated()])
    async def test_failures_are_typed_and_reported(self, history, error):
        api = FakeRepoApi(errors={"octocat": error})
        flow = SearchFlow(api, history)
        messages = flow.messages.subscribe()

        with pytest.raises(type(error)):
            await flow.search("octocat")

        assert flow.state.value.status == "failed"
        assert flow.state.value.message == error.message
        assert flow.is_loading.value is False
        assert await asyncio.wait_for(anext(messages), 1) == error.message
        flow.close()

    @pytest.mark.asyncio
    async def test_select_records_history(self, flow, history, octocat_results):
        state = await flow.search("octocat")

        await flow.select(state.items[1])
        await flow.select(state.items[0])
        await flow.select(state.items[1])

        assert [repo.full_name for repo in await history.list()] == [
            "octocat/repo-1",
            "octocat/repo-0",
        ]

    @pytest.mark.asyncio
    async def test_close_cancels_in_flight_search(self, history):
        api = FakeRepoApi(gates={"octocat": asyncio.Event()})
        flow = SearchFlow(api, history)

        task = flow.submit("octocat")
        await asyncio.sleep(0)
        flow.close()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert flow.state.value.status == "loading"
