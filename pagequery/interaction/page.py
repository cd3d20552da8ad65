"""Класс Page для операций уровня страницы."""

import asyncio
import copy
import logging
import re
from typing import TYPE_CHECKING, Any

from uuid_extensions import uuid7str

from pagequery import js
from pagequery.config import Defaults, load_defaults
from pagequery.exceptions import ElementNotFoundError, PageNotFoundError
from pagequery.handle import ContextBinding
from pagequery.retry import RetryPolicy
from pagequery.scope import Scope

from .element import Element, Elements
from .resolver import QueryResolver
from .search import SearchSession, perform_search
from .synchronizer import Synchronizer

if TYPE_CHECKING:
	from cdp_use.cdp.target.commands import AttachToTargetParameters

	from pagequery.channel import RemoteChannel

logger = logging.getLogger(__name__)

# Сентинел: использовать стратегию повторов из привязки страницы
_BINDING_POLICY: Any = object()


class _Attachment:
	"""Подключение к target, общее для всех копий страницы с разными привязками."""

	def __init__(self, channel: 'RemoteChannel', target_id: str, session_id: str | None, trace: bool):
		self.id = uuid7str()
		self.root_channel = channel
		self.target_id = target_id
		self.trace = trace
		self.channel: 'RemoteChannel | None' = None
		self.resolver: QueryResolver | None = None
		self.synchronizer: Synchronizer | None = None
		self._attach_lock = asyncio.Lock()
		if session_id:
			self._bind(session_id)

	def _bind(self, session_id: str) -> None:
		self.channel = self.root_channel.with_session(session_id)
		self.resolver = QueryResolver(self.channel, self.id, trace=self.trace)
		self.synchronizer = Synchronizer(self.resolver)

	async def ensure(self, scope: Scope) -> str:
		"""Обеспечить наличие session ID для этого target."""
		if not self._attached:
			async with self._attach_lock:
				# Другая цепочка могла подключиться, пока мы ждали блокировку
				if not self._attached:
					await self._attach(scope)

		assert self.channel is not None and self.channel.session_id is not None
		return self.channel.session_id

	@property
	def _attached(self) -> bool:
		return self.channel is not None and self.channel.session_id is not None

	async def _attach(self, scope: Scope) -> None:
		attach_params: 'AttachToTargetParameters' = {'targetId': self.target_id, 'flatten': True}
		attach_result = await self.root_channel.call('Target.attachToTarget', dict(attach_params), scope)
		session_channel = self.root_channel.with_session(attach_result['sessionId'])

		# Включить необходимые домены
		await asyncio.gather(
			session_channel.call('Page.enable', scope=scope),
			session_channel.call('DOM.enable', scope=scope),
			session_channel.call('Runtime.enable', scope=scope),
		)
		self._bind(attach_result['sessionId'])
		logger.debug(f'Attached to target {self.target_id} with session {attach_result["sessionId"]}')


class Page:
	"""Запросы к документу страницы (вкладка или iframe).

	Одиночные запросы элементов повторяются по стратегии привязки страницы,
	списки и has-запросы выполняются за одну попытку.

	Без явных `defaults` берутся опции процесса из переменной PAGEQUERY.
	"""

	def __init__(
		self,
		channel: 'RemoteChannel',
		target_id: str,
		session_id: str | None = None,
		binding: ContextBinding | None = None,
		defaults: Defaults | None = None,
	):
		self._defaults = defaults if defaults is not None else load_defaults()
		self._binding = binding or ContextBinding()
		self._attachment = _Attachment(channel, target_id, session_id, trace=self._defaults.trace)

	@property
	def id(self) -> str:
		"""Идентификатор страницы, которым помечаются её дескрипторы."""
		return self._attachment.id

	@property
	def target_id(self) -> str:
		return self._attachment.target_id

	@property
	def defaults(self) -> Defaults:
		return self._defaults

	@property
	def binding(self) -> ContextBinding:
		return self._binding

	@property
	def scope(self) -> Scope:
		return self._binding.scope

	@property
	def channel(self) -> 'RemoteChannel':
		"""Канал сессии target. Доступен после первого запроса к странице."""
		if self._attachment.channel is None:
			raise RuntimeError(f'Page {self.target_id} is not attached yet')
		return self._attachment.channel

	@property
	def resolver(self) -> QueryResolver:
		if self._attachment.resolver is None:
			raise RuntimeError(f'Page {self.target_id} is not attached yet')
		return self._attachment.resolver

	@property
	def synchronizer(self) -> Synchronizer:
		if self._attachment.synchronizer is None:
			raise RuntimeError(f'Page {self.target_id} is not attached yet')
		return self._attachment.synchronizer

	async def _ensure_session(self) -> str:
		return await self._attachment.ensure(self.scope)

	@property
	async def session_id(self) -> str:
		"""Получить session ID для этого target."""
		return await self._ensure_session()

	# Привязка к области выполнения

	def _rebind(self, binding: ContextBinding) -> 'Page':
		page = copy.copy(self)
		page._binding = binding
		return page

	def with_context(self, scope: Scope) -> 'Page':
		return self._rebind(self._binding.with_context(scope))

	def with_timeout(self, seconds: float) -> 'Page':
		"""Копия страницы, операции которой ограничены `seconds` секундами."""
		return self._rebind(self._binding.with_timeout(seconds))

	def cancel_timeout(self) -> 'Page':
		return self._rebind(self._binding.cancel_timeout())

	def cancel(self) -> 'Page':
		return self._rebind(self._binding.cancel())

	def with_retry_policy(self, policy: RetryPolicy | None) -> 'Page':
		return self._rebind(self._binding.with_retry_policy(policy))

	# Запросы элементов

	async def _one(self, script: str, args: tuple[Any, ...], policy: RetryPolicy | None = _BINDING_POLICY) -> Element:
		await self._ensure_session()
		if policy is _BINDING_POLICY:
			policy = self._binding.retry_policy
		handle = await self.resolver.resolve_one(self._binding, script, args, policy=policy)
		return Element(self, handle)

	async def _many(self, script: str, args: tuple[Any, ...]) -> Elements:
		await self._ensure_session()
		handles = await self.resolver.resolve_many(self._binding, script, args)
		return Elements(Element(self, handle) for handle in handles)

	async def element(self, selector: str) -> Element:
		"""Первый элемент по CSS селектору, с повторами пока он не появится."""
		return await self._one(js.ELEMENT, (selector,))

	async def element_x(self, xpath: str) -> Element:
		return await self._one(js.ELEMENT_X, (xpath,))

	async def element_matches(self, selector: str, regex: str) -> Element:
		"""Первый элемент по селектору, текст которого подходит под регулярное выражение."""
		return await self._one(js.ELEMENT_MATCHES, (selector, regex))

	async def element_by_js(self, script: str, *args: Any) -> Element:
		"""Элемент, который возвращает функция `script`.

		Args:
			script: JavaScript функция, например '(id) => document.getElementById(id)'
			*args: Аргументы, сериализуемые в JSON
		"""
		return await self._one(script, args)

	async def elements(self, selector: str) -> Elements:
		return await self._many(js.ELEMENTS, (selector,))

	async def elements_x(self, xpath: str) -> Elements:
		return await self._many(js.ELEMENTS_X, (xpath,))

	async def elements_by_js(self, script: str, *args: Any) -> Elements:
		return await self._many(script, args)

	async def _has(self, script: str, args: tuple[Any, ...]) -> bool:
		try:
			await self._one(script, args, policy=None)
		except ElementNotFoundError:
			return False
		return True

	async def has(self, selector: str) -> bool:
		"""Есть ли элемент прямо сейчас, без ожидания."""
		return await self._has(js.ELEMENT, (selector,))

	async def has_x(self, xpath: str) -> bool:
		return await self._has(js.ELEMENT_X, (xpath,))

	async def has_matches(self, selector: str, regex: str) -> bool:
		return await self._has(js.ELEMENT_MATCHES, (selector, regex))

	async def element_from_node(self, node_query: dict[str, Any], binding: ContextBinding | None = None) -> Element:
		"""Элемент по {'nodeId': ...} или {'backendNodeId': ...}."""
		await self._ensure_session()
		handle = await self.resolver.from_node(binding or self._binding, node_query)
		return Element(self, handle)

	async def search(self, query: str, deep: bool = False, policy: RetryPolicy | None = _BINDING_POLICY) -> SearchSession:
		"""Поиск по всему DOM: CSS селектор, XPath или простой текст.

		Возвращённую сессию нужно освободить, лучше через `async with`.
		"""
		await self._ensure_session()
		if policy is _BINDING_POLICY:
			policy = self._binding.retry_policy
		search_id, result_count = await perform_search(self.channel, self._binding, query, deep=deep, policy=policy)
		return SearchSession(self, search_id, result_count, self._binding)

	async def eval(self, script: str, *args: Any) -> Any:
		"""Выполнить функцию в контексте страницы и вернуть значение результата."""
		await self._ensure_session()
		result = await self.resolver.evaluate(self._binding, script, args, by_value=True)
		return result.get('value')

	async def url(self) -> str:
		return await self.eval(js.LOCATION_HREF)

	def __repr__(self) -> str:
		return f'<Page {self.target_id}>'


class Pages(list[Page]):
	"""Список страниц браузера."""

	def first(self) -> Page | None:
		return self[0] if self else None

	def empty(self) -> bool:
		return len(self) == 0

	async def find(self, selector: str) -> Page:
		"""Первая страница, на которой есть элемент по селектору."""
		for page in self:
			if await page.has(selector):
				return page
		raise PageNotFoundError(selector)

	async def find_by_url(self, regex: str) -> Page:
		"""Первая страница, адрес которой подходит под регулярное выражение."""
		pattern = re.compile(regex)
		for page in self:
			if pattern.search(await page.url()):
				return page
		raise PageNotFoundError(regex)


async def list_pages(
	channel: 'RemoteChannel',
	binding: ContextBinding | None = None,
	defaults: Defaults | None = None,
) -> Pages:
	"""Все открытые страницы (target типа 'page') браузера."""
	scope = binding.scope if binding else None
	targets_result = await channel.call('Target.getTargets', scope=scope)
	existing_targets = targets_result.get('targetInfos', [])

	logger.debug(f'Discovered {len(existing_targets)} existing targets')

	return Pages(
		Page(channel, target['targetId'], binding=binding, defaults=defaults)
		for target in existing_targets
		if target.get('type') == 'page'
	)
