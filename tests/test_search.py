"""Tests for DOM-wide search sessions."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from pagequery.exceptions import ElementNotFoundError, RemoteObjectGoneError, SearchRangeError, SearchReleasedError
from pagequery.handle import ContextBinding
from pagequery.interaction.search import SearchSession, perform_search
from pagequery.retry import CountPolicy, FixedPolicy


def _search_channel(channel, counts: list[int]):
	"""Route channel.call by method; performSearch yields the given result counts in order."""
	searches = iter(counts)
	calls: list[str] = []

	async def call(method, params=None, scope=None):
		calls.append(method)
		if method == 'DOM.performSearch':
			attempt = len([name for name in calls if name == 'DOM.performSearch'])
			return {'searchId': f'search-{attempt}', 'resultCount': next(searches)}
		if method == 'DOM.getSearchResults':
			return {'nodeIds': list(range(params['fromIndex'] + 10, params['toIndex'] + 10))}
		return {}

	channel.call = AsyncMock(side_effect=call)
	return calls


def _page(channel):
	page = MagicMock()
	page.channel = channel

	async def element_from_node(node_query, binding=None):
		return f'element-{node_query["nodeId"]}'

	page.element_from_node = AsyncMock(side_effect=element_from_node)
	return page


class TestPerformSearch:
	@pytest.mark.asyncio
	async def test_requests_document_first(self, channel):
		calls = _search_channel(channel, [2])
		search_id, result_count = await perform_search(channel, ContextBinding(), 'button')
		assert (search_id, result_count) == ('search-1', 2)
		assert calls[:2] == ['DOM.getDocument', 'DOM.performSearch']

	@pytest.mark.asyncio
	async def test_zero_count_sessions_released_before_next_poll(self, channel):
		calls = _search_channel(channel, [0, 0, 0, 3])

		search_id, result_count = await perform_search(channel, ContextBinding(), '//button', policy=FixedPolicy(interval=0))

		assert (search_id, result_count) == ('search-4', 3)
		assert calls.count('DOM.discardSearchResults') == 3
		# каждая пустая сессия освобождается до следующей попытки
		assert calls[1:] == ['DOM.performSearch', 'DOM.discardSearchResults'] * 3 + ['DOM.performSearch']
		discarded = [c.args[1]['searchId'] for c in channel.call.await_args_list if c.args[0] == 'DOM.discardSearchResults']
		assert discarded == ['search-1', 'search-2', 'search-3']

	@pytest.mark.asyncio
	async def test_no_policy_gives_up_after_one_poll(self, channel):
		calls = _search_channel(channel, [0])
		with pytest.raises(ElementNotFoundError):
			await perform_search(channel, ContextBinding(), 'button', policy=None)
		assert calls.count('DOM.performSearch') == 1
		assert calls.count('DOM.discardSearchResults') == 1

	@pytest.mark.asyncio
	async def test_exhausted_policy_releases_every_session(self, channel):
		calls = _search_channel(channel, [0, 0, 0])
		with pytest.raises(ElementNotFoundError):
			await perform_search(channel, ContextBinding(), 'button', policy=CountPolicy(max_retries=2))
		assert calls.count('DOM.performSearch') == 3
		assert calls.count('DOM.discardSearchResults') == 3

	@pytest.mark.asyncio
	async def test_shadow_dom_flag(self, channel):
		_search_channel(channel, [1])
		await perform_search(channel, ContextBinding(), 'button', deep=True)
		params = next(c.args[1] for c in channel.call.await_args_list if c.args[0] == 'DOM.performSearch')
		assert params == {'query': 'button', 'includeUserAgentShadowDOM': True}


class TestSearchSession:
	@pytest.mark.asyncio
	async def test_range(self, channel):
		calls = _search_channel(channel, [])
		session = SearchSession(_page(channel), 'search-1', 5, ContextBinding())

		elements = await session.range(1, 3)

		assert elements == ['element-11', 'element-12']
		assert calls == ['DOM.getSearchResults']

	@pytest.mark.asyncio
	async def test_range_failure_releases_resolved_elements(self, channel):
		_search_channel(channel, [])
		page = MagicMock()
		page.channel = channel
		page.resolver.release_quietly = AsyncMock()

		async def element_from_node(node_query, binding=None):
			if node_query['nodeId'] == 12:
				raise RemoteObjectGoneError(-32000, 'No node with given id found')
			return MagicMock(object_id=f'obj-{node_query["nodeId"]}')

		page.element_from_node = AsyncMock(side_effect=element_from_node)
		session = SearchSession(page, 'search-1', 5, ContextBinding())

		with pytest.raises(RemoteObjectGoneError):
			await session.range(0, 3)

		assert [call.args for call in page.resolver.release_quietly.await_args_list] == [('obj-10',), ('obj-11',)]

	@pytest.mark.asyncio
	@pytest.mark.parametrize('bounds', [(-1, 2), (2, 2), (3, 1), (0, 6)])
	async def test_out_of_range(self, channel, bounds):
		session = SearchSession(_page(channel), 'search-1', 5, ContextBinding())
		with pytest.raises(SearchRangeError):
			await session.range(*bounds)
		channel.call.assert_not_called()

	@pytest.mark.asyncio
	async def test_first(self, channel):
		_search_channel(channel, [])
		session = SearchSession(_page(channel), 'search-1', 5, ContextBinding())
		assert await session.first() == 'element-10'

	@pytest.mark.asyncio
	async def test_first_on_empty_session(self, channel):
		session = SearchSession(_page(channel), 'search-1', 0, ContextBinding())
		assert await session.first() is None
		channel.call.assert_not_called()

	@pytest.mark.asyncio
	async def test_release_once(self, channel):
		calls = _search_channel(channel, [])
		session = SearchSession(_page(channel), 'search-1', 2, ContextBinding())

		await session.release()
		await session.release()

		assert calls == ['DOM.discardSearchResults']
		assert session.released

	@pytest.mark.asyncio
	async def test_read_after_release(self, channel):
		_search_channel(channel, [])
		session = SearchSession(_page(channel), 'search-1', 2, ContextBinding())
		await session.release()
		with pytest.raises(SearchReleasedError):
			await session.range(0, 1)

	@pytest.mark.asyncio
	async def test_context_manager_releases(self, channel):
		calls = _search_channel(channel, [])
		async with SearchSession(_page(channel), 'search-1', 2, ContextBinding()) as session:
			await session.all()
		assert calls == ['DOM.getSearchResults', 'DOM.discardSearchResults']
