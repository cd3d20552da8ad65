"""Канал к удалённой стороне поверх cdp_use CDPClient."""

import ast
import json
import logging
import re
from typing import TYPE_CHECKING, Any, Self
from urllib.parse import urlparse, urlunparse

import httpx
from cdp_use import CDPClient

from pagequery.exceptions import RemoteError, RemoteObjectGoneError

if TYPE_CHECKING:
	from cdp_use.cdp.runtime.commands import CallFunctionOnParameters, EvaluateParameters
	from cdp_use.cdp.runtime.types import CallArgument

	from pagequery.scope import Scope

logger = logging.getLogger(__name__)

# Сообщения, которыми удалённая сторона сообщает об исчезнувшем объекте
GONE_MESSAGES = (
	'Could not find object with given id',
	'No node with given id found',
	'Cannot find context with specified id',
)
SERVER_ERROR_CODE = -32000

_ERROR_DICT_RE = re.compile(r'\{.*\}', re.DOTALL)


def to_remote_error(method: str, error: Exception) -> RemoteError:
	"""Преобразовать ошибку клиента в структурированную RemoteError.

	cdp_use выбрасывает RuntimeError с полезной нагрузкой ошибки протокола
	(словарь или его строковое представление внутри сообщения).
	"""
	payload: Any = error.args[0] if error.args else None
	if not isinstance(payload, dict):
		match = _ERROR_DICT_RE.search(str(error))
		if match:
			try:
				payload = json.loads(match.group(0))
			except ValueError:
				try:
					payload = ast.literal_eval(match.group(0))
				except (ValueError, SyntaxError):
					payload = None

	if isinstance(payload, dict) and 'message' in payload:
		code = payload.get('code')
		message = str(payload.get('message', ''))
		data = payload.get('data')
	else:
		code = None
		message = str(error)
		data = None

	error_class = RemoteObjectGoneError if any(gone in message for gone in GONE_MESSAGES) else RemoteError
	return error_class(code, message, data, method=method)


def is_server_error(error: Exception) -> bool:
	"""Общая серверная ошибка протокола (код -32000), например уничтоженный контекст."""
	return isinstance(error, RemoteError) and error.code == SERVER_ERROR_CODE


class RemoteChannel:
	"""Запрос/ответ к удалённой стороне с учётом области выполнения.

	Каждый вызов с областью проходит через Scope.guard(), поэтому при отмене
	незавершённый запрос прерывается, а не просто игнорируется.
	"""

	def __init__(self, client: CDPClient, session_id: str | None = None):
		self._client = client
		self._session_id = session_id

	@property
	def client(self) -> CDPClient:
		return self._client

	@property
	def session_id(self) -> str | None:
		return self._session_id

	def with_session(self, session_id: str | None) -> 'RemoteChannel':
		"""Канал того же клиента, адресованный другой сессии (target)."""
		return RemoteChannel(self._client, session_id)

	@classmethod
	async def connect(cls, cdp_url: str, headers: dict[str, str] | None = None) -> Self:
		"""Подключиться к удалённому браузеру по ws:// или http:// адресу отладки."""
		if not cdp_url.startswith('ws'):
			parsed_url = urlparse(cdp_url)
			path = parsed_url.path.rstrip('/')

			if not path.endswith('/json/version'):
				path = path + '/json/version'

			url = urlunparse(
				(parsed_url.scheme, parsed_url.netloc, path, parsed_url.params, parsed_url.query, parsed_url.fragment)
			)

			async with httpx.AsyncClient() as http_client:
				version_info = await http_client.get(url, headers=headers or {})
				version_info.raise_for_status()
				logger.debug(f'Raw version info: {version_info.text}')
				cdp_url = version_info.json()['webSocketDebuggerUrl']

		logger.debug(f'🌎 Connecting to browser via CDP: {cdp_url}')
		client = CDPClient(cdp_url, additional_headers=headers)
		await client.start()
		return cls(client)

	async def close(self) -> None:
		await self._client.stop()

	async def call(self, method: str, params: dict[str, Any] | None = None, scope: 'Scope | None' = None) -> dict[str, Any]:
		"""Вызвать метод протокола, например 'DOM.performSearch'."""
		if scope is not None:
			scope.check()

		domain_name, command_name = method.split('.', 1)
		command = getattr(getattr(self._client.send, domain_name), command_name)

		kwargs: dict[str, Any] = {'session_id': self._session_id}
		if params is not None:
			kwargs['params'] = params

		logger.debug(f'→ {method} {params or {}}')
		try:
			if scope is None:
				return await command(**kwargs)
			return await scope.guard(command(**kwargs))
		except RuntimeError as e:
			raise to_remote_error(method, e) from e

	async def evaluate(self, expression: str, scope: 'Scope | None' = None, by_value: bool = False) -> dict[str, Any]:
		"""Runtime.evaluate в глобальном контексте страницы."""
		params: 'EvaluateParameters' = {'expression': expression, 'returnByValue': by_value, 'awaitPromise': True}
		return await self.call('Runtime.evaluate', dict(params), scope)

	async def call_function_on(
		self,
		function_declaration: str,
		object_id: str,
		arguments: list['CallArgument'] | None = None,
		scope: 'Scope | None' = None,
		by_value: bool = False,
	) -> dict[str, Any]:
		"""Runtime.callFunctionOn с объектом `object_id` в роли this."""
		params: 'CallFunctionOnParameters' = {
			'functionDeclaration': function_declaration,
			'objectId': object_id,
			'returnByValue': by_value,
			'awaitPromise': True,
		}
		if arguments:
			params['arguments'] = arguments
		return await self.call('Runtime.callFunctionOn', dict(params), scope)

	async def get_properties(self, object_id: str, scope: 'Scope | None' = None) -> list[dict[str, Any]]:
		result = await self.call('Runtime.getProperties', {'objectId': object_id, 'ownProperties': True}, scope)
		return result.get('result', [])

	async def release(self, object_id: str, scope: 'Scope | None' = None) -> None:
		"""Явно освободить удалённый объект."""
		await self.call('Runtime.releaseObject', {'objectId': object_id}, scope)
