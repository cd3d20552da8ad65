"""Класс Element для операций с элементами."""

from typing import TYPE_CHECKING, Any

from typing_extensions import TypedDict

from pagequery import js
from pagequery.exceptions import ElementNotFoundError, ExpectElementError
from pagequery.retry import RetryPolicy
from pagequery.scope import Scope

if TYPE_CHECKING:
	from cdp_use.cdp.dom.commands import DescribeNodeParameters

	from pagequery.handle import ObjectHandle

	from .page import Page


class BoundingBox(TypedDict):
	"""Граничный прямоугольник элемента с позицией и размерами."""

	x: float
	y: float
	width: float
	height: float


class Elements(list['Element']):
	"""Список элементов в порядке разрешения. Пустой список тоже валидный результат."""

	def first(self) -> 'Element | None':
		return self[0] if self else None

	def last(self) -> 'Element | None':
		return self[-1] if self else None

	def empty(self) -> bool:
		return len(self) == 0


class Element:
	"""Операции с элементом через дескриптор удалённого объекта.

	Производные запросы (дочерние элементы, родители, соседи) выполняются с
	этим элементом в роли this и без повторов, если стратегия не передана явно.
	"""

	def __init__(self, page: 'Page', handle: 'ObjectHandle'):
		self._page = page
		self._handle = handle

	@property
	def page(self) -> 'Page':
		return self._page

	@property
	def handle(self) -> 'ObjectHandle':
		return self._handle

	@property
	def object_id(self) -> str:
		return self._handle.object_id

	@property
	def scope(self) -> Scope:
		return self._handle.scope

	def _rebind(self, handle: 'ObjectHandle') -> 'Element':
		return Element(self._page, handle)

	# Привязка к области выполнения

	def with_context(self, scope: Scope) -> 'Element':
		return self._rebind(self._handle.with_context(scope))

	def with_timeout(self, seconds: float) -> 'Element':
		"""Копия элемента, операции которой ограничены `seconds` секундами."""
		return self._rebind(self._handle.with_timeout(seconds))

	def cancel_timeout(self) -> 'Element':
		return self._rebind(self._handle.cancel_timeout())

	def cancel(self) -> 'Element':
		return self._rebind(self._handle.cancel())

	def with_retry_policy(self, policy: RetryPolicy | None) -> 'Element':
		return self._rebind(self._handle.with_retry_policy(policy))

	# Производные запросы

	async def _one(self, script: str, args: tuple[Any, ...], policy: RetryPolicy | None) -> 'Element':
		self._handle.ensure_ready()
		handle = await self._page.resolver.resolve_one(
			self._handle.binding, script, args, policy=policy, this_id=self._handle.object_id
		)
		return self._rebind(handle)

	async def _many(self, script: str, args: tuple[Any, ...]) -> Elements:
		self._handle.ensure_ready()
		handles = await self._page.resolver.resolve_many(self._handle.binding, script, args, this_id=self._handle.object_id)
		return Elements(self._rebind(handle) for handle in handles)

	async def element(self, selector: str, policy: RetryPolicy | None = None) -> 'Element':
		"""Первый потомок, подходящий под CSS селектор."""
		return await self._one(js.ELEMENT, (selector,), policy)

	async def element_x(self, xpath: str, policy: RetryPolicy | None = None) -> 'Element':
		"""Первый узел по XPath относительно этого элемента."""
		return await self._one(js.ELEMENT_X, (xpath,), policy)

	async def element_matches(self, selector: str, regex: str, policy: RetryPolicy | None = None) -> 'Element':
		"""Первый потомок по селектору, текст которого подходит под регулярное выражение."""
		return await self._one(js.ELEMENT_MATCHES, (selector, regex), policy)

	async def element_by_js(self, script: str, *args: Any, policy: RetryPolicy | None = None) -> 'Element':
		return await self._one(script, args, policy)

	async def elements(self, selector: str) -> Elements:
		return await self._many(js.ELEMENTS, (selector,))

	async def elements_x(self, xpath: str) -> Elements:
		return await self._many(js.ELEMENTS_X, (xpath,))

	async def elements_by_js(self, script: str, *args: Any) -> Elements:
		return await self._many(script, args)

	async def parent(self, policy: RetryPolicy | None = None) -> 'Element':
		return await self._one(js.PARENT, (), policy)

	async def parents(self, selector: str = '*') -> Elements:
		"""Все предки, подходящие под селектор, от ближайшего к корню."""
		return await self._many(js.PARENTS, (selector,))

	async def next(self, policy: RetryPolicy | None = None) -> 'Element':
		return await self._one(js.NEXT, (), policy)

	async def previous(self, policy: RetryPolicy | None = None) -> 'Element':
		return await self._one(js.PREVIOUS, (), policy)

	async def _has(self, script: str, args: tuple[Any, ...]) -> bool:
		try:
			await self._one(script, args, None)
		except ElementNotFoundError:
			return False
		return True

	async def has(self, selector: str) -> bool:
		return await self._has(js.ELEMENT, (selector,))

	async def has_x(self, xpath: str) -> bool:
		return await self._has(js.ELEMENT_X, (xpath,))

	async def has_matches(self, selector: str, regex: str) -> bool:
		return await self._has(js.ELEMENT_MATCHES, (selector, regex))

	# Информация об элементе

	async def describe(self, depth: int = 1, pierce: bool = False) -> dict[str, Any]:
		"""Описание узла через DOM.describeNode."""
		self._handle.ensure_ready()
		params: 'DescribeNodeParameters' = {'objectId': self._handle.object_id, 'depth': depth, 'pierce': pierce}
		result = await self._page.channel.call('DOM.describeNode', dict(params), self.scope)
		return result['node']

	async def shadow_root(self) -> 'Element':
		"""Теневой корень элемента."""
		node = await self.describe()
		shadow_roots = node.get('shadowRoots') or []
		if not shadow_roots:
			raise ExpectElementError(f'element has no shadow root: {node.get("nodeName")}')

		handle = await self._page.resolver.from_node(self._handle.binding, {'backendNodeId': shadow_roots[0]['backendNodeId']})
		return self._rebind(handle)

	async def box(self) -> BoundingBox:
		shape = await self._page.synchronizer.shape(self._handle)
		return BoundingBox(x=shape['x'], y=shape['y'], width=shape['width'], height=shape['height'])

	async def visible(self) -> bool:
		shape = await self._page.synchronizer.shape(self._handle)
		return bool(shape['visible'])

	async def eval(self, script: str, *args: Any) -> Any:
		"""Выполнить функцию с элементом в роли this и вернуть значение результата.

		Args:
			script: JavaScript функция, например '() => this.innerText'
			*args: Аргументы, сериализуемые в JSON
		"""
		self._handle.ensure_ready()
		result = await self._page.resolver.evaluate(self._handle.binding, script, args, this_id=self._handle.object_id, by_value=True)
		return result.get('value')

	async def text(self) -> str:
		return await self.eval('() => this.innerText')

	# Ожидания

	def _policy(self, policy: RetryPolicy | None) -> RetryPolicy | None:
		return policy if policy is not None else self._handle.binding.retry_policy

	async def wait(self, script: str, *args: Any, policy: RetryPolicy | None = None) -> None:
		"""Дождаться, пока функция с элементом в роли this вернёт true."""
		await self._page.synchronizer.wait(self._handle, script, args, self._policy(policy))

	async def wait_visible(self, policy: RetryPolicy | None = None) -> None:
		await self._page.synchronizer.wait_visible(self._handle, self._policy(policy))

	async def wait_invisible(self, policy: RetryPolicy | None = None) -> None:
		await self._page.synchronizer.wait_invisible(self._handle, self._policy(policy))

	async def wait_stable(self, policy: RetryPolicy | None = None) -> None:
		await self._page.synchronizer.wait_stable(self._handle, self._policy(policy))

	async def release(self) -> None:
		"""Освободить удалённый объект. После этого вызовы с элементом дают RemoteObjectGoneError."""
		await self._page.resolver.release(self._handle)

	def __repr__(self) -> str:
		return f'<Element {self._handle.object_id}>'
