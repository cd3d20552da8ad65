"""Сессия поиска по всему DOM страницы."""

import logging
from typing import TYPE_CHECKING, Any, Self

from pagequery.exceptions import ElementNotFoundError, SearchRangeError, SearchReleasedError
from pagequery.interaction.resolver import cleanup_scope
from pagequery.retry import RetryPolicy, retry

if TYPE_CHECKING:
	from cdp_use.cdp.dom.commands import GetSearchResultsParameters, PerformSearchParameters

	from pagequery.channel import RemoteChannel
	from pagequery.handle import ContextBinding

	from .element import Element, Elements
	from .page import Page

logger = logging.getLogger(__name__)


async def discard_search(channel: 'RemoteChannel', search_id: str) -> None:
	await channel.call('DOM.discardSearchResults', {'searchId': search_id}, cleanup_scope())


async def perform_search(
	channel: 'RemoteChannel',
	binding: 'ContextBinding',
	query: str,
	deep: bool = False,
	policy: RetryPolicy | None = None,
) -> tuple[str, int]:
	"""Выполнять DOM.performSearch, пока результатов не станет больше нуля.

	Пустая сессия освобождается до следующей попытки, поэтому число вызовов
	DOM.discardSearchResults равно числу пустых попыток. Возвращает
	(search_id, result_count).
	"""
	scope = binding.scope

	# Документ не индексируется для поиска, пока его не запросили
	await channel.call('DOM.getDocument', {'depth': 0}, scope)

	params: 'PerformSearchParameters' = {'query': query, 'includeUserAgentShadowDOM': deep}
	found: dict[str, Any] = {}

	async def attempt() -> bool:
		nonlocal found
		found = await channel.call('DOM.performSearch', dict(params), scope)
		if found['resultCount'] > 0:
			return True

		await discard_search(channel, found['searchId'])
		return False

	await retry(scope, policy, attempt, give_up=lambda: ElementNotFoundError(query))

	logger.debug(f'🔍 Search {query!r} found {found["resultCount"]} results')
	return found['searchId'], found['resultCount']


class SearchSession:
	"""Серверное состояние поиска, требующее явного освобождения.

	Сессия принадлежит одному владельцу. Используйте её как асинхронный
	контекстный менеджер или вызовите release() вручную.
	"""

	def __init__(self, page: 'Page', search_id: str, result_count: int, binding: 'ContextBinding'):
		self._page = page
		self._search_id = search_id
		self._result_count = result_count
		self._binding = binding
		self._released = False

	@property
	def page(self) -> 'Page':
		return self._page

	@property
	def search_id(self) -> str:
		return self._search_id

	@property
	def result_count(self) -> int:
		return self._result_count

	@property
	def released(self) -> bool:
		return self._released

	async def range(self, from_index: int, to_index: int) -> 'Elements':
		"""Элементы результатов с индексами [from_index, to_index)."""
		if self._released:
			raise SearchReleasedError(self._search_id)
		if not 0 <= from_index < to_index <= self._result_count:
			raise SearchRangeError(from_index, to_index, self._result_count)

		params: 'GetSearchResultsParameters' = {
			'searchId': self._search_id,
			'fromIndex': from_index,
			'toIndex': to_index,
		}
		result = await self._page.channel.call('DOM.getSearchResults', dict(params), self._binding.scope)

		from .element import Elements

		elements = Elements()
		try:
			for node_id in result['nodeIds']:
				elements.append(await self._page.element_from_node({'nodeId': node_id}, binding=self._binding))
		except BaseException:
			for element in elements:
				await self._page.resolver.release_quietly(element.object_id)
			raise
		return elements

	async def first(self) -> 'Element | None':
		"""Первый результат или None, если результатов нет."""
		if self._result_count == 0:
			return None
		return (await self.range(0, 1)).first()

	async def all(self) -> 'Elements':
		if self._result_count == 0:
			from .element import Elements

			return Elements()
		return await self.range(0, self._result_count)

	async def release(self) -> None:
		"""Освободить сессию на удалённой стороне. Повторный вызов ничего не делает."""
		if self._released:
			logger.debug(f'Search session {self._search_id} already released')
			return
		self._released = True
		await discard_search(self._page.channel, self._search_id)

	async def __aenter__(self) -> Self:
		return self

	async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
		await self.release()

	def __repr__(self) -> str:
		state = 'released' if self._released else 'open'
		return f'<SearchSession {self._search_id} results={self._result_count} {state}>'
