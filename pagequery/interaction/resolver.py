"""Разрешение локаторов в дескрипторы удалённых объектов."""

import json
import logging
from typing import TYPE_CHECKING, Any

from pagequery.exceptions import ElementNotFoundError, EvalError, ExpectElementError, ExpectElementsError
from pagequery.handle import ContextBinding, ObjectHandle
from pagequery.js import fn_apply, fn_this
from pagequery.retry import RetryPolicy, retry
from pagequery.scope import Scope

if TYPE_CHECKING:
	from cdp_use.cdp.runtime.types import CallArgument

	from pagequery.channel import RemoteChannel

logger = logging.getLogger(__name__)
trace_logger = logging.getLogger('pagequery.trace')

# Маркер DOM-узла в описании удалённого значения
NODE_SUBTYPE = 'node'
# Служебные свойства массива, которые не являются элементами
_ARRAY_META_PROPERTIES = ('length', '__proto__')
# Бюджет на освобождение промежуточных объектов, не зависящий от области вызова
CLEANUP_TIMEOUT = 5.0


def cleanup_scope() -> Scope:
	"""Отдельная область для очистки, чтобы она выполнялась и после отмены вызова."""
	return Scope.background().with_timeout(CLEANUP_TIMEOUT)


def describe_exception(exception_details: dict[str, Any]) -> str:
	"""Текст исключения из exceptionDetails протокола."""
	exception = exception_details.get('exception') or {}
	return exception.get('description') or exception_details.get('text') or json.dumps(exception_details)


def is_null(remote_object: dict[str, Any]) -> bool:
	return remote_object.get('type') == 'object' and remote_object.get('subtype') == 'null'


class QueryResolver:
	"""Превращает скрипты-локаторы в ObjectHandle.

	Одиночный запрос повторяется, пока скрипт возвращает null; список
	никогда не повторяется.
	"""

	def __init__(self, channel: 'RemoteChannel', page_id: str, trace: bool = False):
		self._channel = channel
		self._page_id = page_id
		self._trace = trace

	@property
	def channel(self) -> 'RemoteChannel':
		return self._channel

	async def evaluate(
		self,
		binding: ContextBinding,
		js: str,
		args: list[Any] | tuple[Any, ...] = (),
		this_id: str | None = None,
		by_value: bool = False,
	) -> dict[str, Any]:
		"""Выполнить функцию `js` с `this_id` в роли this (или window) и вернуть удалённое значение."""
		scope = binding.scope
		scope.check()

		if self._trace:
			trace_logger.info(f'js {js} {json.dumps(list(args))}')

		if this_id:
			call_args: list['CallArgument'] = [{'value': arg} for arg in args]
			response = await self._channel.call_function_on(fn_this(js), this_id, call_args, scope=scope, by_value=by_value)
		else:
			response = await self._channel.evaluate(fn_apply(js, args), scope=scope, by_value=by_value)

		if 'exceptionDetails' in response:
			exception_details = response['exceptionDetails']
			raise EvalError(describe_exception(exception_details), exception_details)

		return response['result']

	def _handle(self, binding: ContextBinding, remote_object: dict[str, Any]) -> ObjectHandle:
		return ObjectHandle(page_id=self._page_id, object_id=remote_object.get('objectId', ''), binding=binding)

	async def resolve_one(
		self,
		binding: ContextBinding,
		js: str,
		args: list[Any] | tuple[Any, ...] = (),
		*,
		policy: RetryPolicy | None,
		this_id: str | None = None,
	) -> ObjectHandle:
		"""Найти один элемент, повторяя поиск по `policy`, пока скрипт возвращает null.

		Без стратегии делается одна попытка и сразу выбрасывается
		ElementNotFoundError. Значение, не являющееся узлом, даёт
		ExpectElementError без повторов.
		"""
		found: dict[str, Any] = {}

		async def attempt() -> bool:
			nonlocal found
			found = await self.evaluate(binding, js, args, this_id=this_id)
			return not is_null(found)

		await retry(binding.scope, policy, attempt, give_up=lambda: ElementNotFoundError(js))

		if found.get('subtype') != NODE_SUBTYPE:
			if found.get('objectId'):
				await self.release_quietly(found['objectId'])
			raise ExpectElementError(found)

		return self._handle(binding, found)

	async def resolve_many(
		self,
		binding: ContextBinding,
		js: str,
		args: list[Any] | tuple[Any, ...] = (),
		*,
		this_id: str | None = None,
	) -> list[ObjectHandle]:
		"""Найти список элементов за одну попытку.

		Скрипт должен вернуть массив. Промежуточный массив освобождается после
		перечисления в любом случае, в том числе при ошибке.
		"""
		array = await self.evaluate(binding, js, args, this_id=this_id)

		if array.get('subtype') != 'array':
			raise ExpectElementsError(array)

		array_id = array['objectId']
		handles: list[ObjectHandle] = []
		try:
			properties = await self._channel.get_properties(array_id, scope=binding.scope)
			for remote_property in properties:
				if remote_property.get('name') in _ARRAY_META_PROPERTIES:
					continue

				value = remote_property.get('value') or {}
				if value.get('subtype') != NODE_SUBTYPE:
					raise ExpectElementsError(value)

				handles.append(self._handle(binding, value))
		except BaseException:
			await self.release_quietly(array_id)
			raise

		await self._channel.release(array_id, scope=cleanup_scope())
		return handles

	async def from_node(self, binding: ContextBinding, node_query: dict[str, Any]) -> ObjectHandle:
		"""Дескриптор элемента по nodeId или backendNodeId через DOM.resolveNode."""
		result = await self._channel.call('DOM.resolveNode', node_query, binding.scope)
		remote_object = result.get('object') or {}
		if remote_object.get('subtype') not in (None, NODE_SUBTYPE):
			raise ExpectElementError(remote_object)
		return self._handle(binding, remote_object)

	async def release(self, handle: ObjectHandle) -> None:
		"""Освободить удалённый объект дескриптора."""
		handle.ensure_ready()
		await self._channel.release(handle.object_id, scope=handle.scope)

	async def release_quietly(self, object_id: str) -> None:
		"""Освободить промежуточный объект на пути ошибки, не маскируя исходную ошибку."""
		try:
			await self._channel.release(object_id, scope=cleanup_scope())
		except Exception as e:
			logger.warning(f'Failed to release remote object {object_id}: {e}')
