"""Ожидания состояния элемента поверх движка повторов."""

import logging
from typing import TYPE_CHECKING, Any

from pagequery.exceptions import WaitConditionError
from pagequery.js import SHAPE
from pagequery.retry import RetryPolicy, retry

if TYPE_CHECKING:
	from pagequery.handle import ObjectHandle

	from .resolver import QueryResolver

logger = logging.getLogger(__name__)

# Поля геометрии, по которым сравниваются выборки в wait_stable
_GEOMETRY_KEYS = ('x', 'y', 'width', 'height')


class Synchronizer:
	"""Ожидания видимости и стабильности элемента.

	Каждое ожидание это предикат, который гоняет retry(); собственных циклов
	опроса здесь нет.
	"""

	def __init__(self, resolver: 'QueryResolver'):
		self._resolver = resolver

	async def shape(self, handle: 'ObjectHandle') -> dict[str, Any]:
		"""Геометрия и флаг видимости элемента одним вызовом."""
		handle.ensure_ready()
		result = await self._resolver.evaluate(handle.binding, SHAPE, this_id=handle.object_id, by_value=True)
		return result['value']

	async def _until(self, handle: 'ObjectHandle', policy: RetryPolicy | None, condition: str, predicate) -> None:
		await retry(handle.scope, policy, predicate, give_up=lambda: WaitConditionError(condition))

	async def wait_visible(self, handle: 'ObjectHandle', policy: RetryPolicy | None) -> None:
		async def is_visible() -> bool:
			return bool((await self.shape(handle))['visible'])

		await self._until(handle, policy, 'element visible', is_visible)

	async def wait_invisible(self, handle: 'ObjectHandle', policy: RetryPolicy | None) -> None:
		async def is_invisible() -> bool:
			return not (await self.shape(handle))['visible']

		await self._until(handle, policy, 'element invisible', is_invisible)

	async def wait_stable(self, handle: 'ObjectHandle', policy: RetryPolicy | None) -> None:
		"""Дождаться, пока геометрия элемента перестанет меняться.

		Сначала ждётся видимость, затем геометрия снимается с темпом стратегии
		повторов. Успех только когда две подряд идущие выборки совпадают: одной
		выборки никогда не достаточно.
		"""
		await self.wait_visible(handle, policy)

		previous: tuple[float, ...] | None = None

		async def is_stable() -> bool:
			nonlocal previous
			shape = await self.shape(handle)
			current = tuple(shape[key] for key in _GEOMETRY_KEYS)
			stable = previous is not None and current == previous
			if previous is not None and not stable:
				logger.debug(f'Element {handle.object_id} moved: {previous} -> {current}')
			previous = current
			return stable

		await self._until(handle, policy, 'element stable', is_stable)

	async def wait(self, handle: 'ObjectHandle', js: str, args: list[Any] | tuple[Any, ...], policy: RetryPolicy | None) -> None:
		"""Дождаться, пока функция `js` с элементом в роли this вернёт true."""

		async def holds() -> bool:
			handle.ensure_ready()
			result = await self._resolver.evaluate(handle.binding, js, args, this_id=handle.object_id, by_value=True)
			return result.get('value') is True

		await self._until(handle, policy, js, holds)
