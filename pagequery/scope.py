"""Область выполнения: сигнал отмены плюс необязательный дедлайн.

Область передаётся явно через каждый дескриптор и каждую привязку. Дочерняя
область отменяется вместе с родительской и никогда не живёт дольше её
дедлайна.
"""

import asyncio
import logging
import time
import weakref
from collections.abc import Awaitable
from typing import TypeVar

from pagequery.exceptions import DeadlineExceededError, ScopeCancelledError, ScopeError

logger = logging.getLogger(__name__)

T = TypeVar('T')


class Scope:
	"""Сигнал отмены и дедлайн для цепочки операций."""

	def __init__(self, parent: 'Scope | None' = None, deadline: float | None = None):
		if parent is not None and parent.deadline is not None:
			deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)

		self._parent = parent
		self._deadline = deadline
		self._cancelled = False
		self._reason = 'Scope cancelled'
		self._event = asyncio.Event()
		self._children: weakref.WeakSet[Scope] = weakref.WeakSet()

		if parent is not None:
			parent._children.add(self)
			if parent.cancelled:
				self.cancel(parent._reason)

	@classmethod
	def background(cls) -> 'Scope':
		"""Корневая область без дедлайна."""
		return cls()

	@property
	def parent(self) -> 'Scope | None':
		return self._parent

	@property
	def deadline(self) -> float | None:
		"""Дедлайн в секундах по time.monotonic()."""
		return self._deadline

	@property
	def cancelled(self) -> bool:
		return self._cancelled

	def child(self) -> 'Scope':
		"""Создать дочернюю область, которую можно отменить отдельно."""
		return Scope(parent=self)

	def with_timeout(self, seconds: float) -> 'Scope':
		"""Создать дочернюю область с дедлайном через `seconds` секунд."""
		return Scope(parent=self, deadline=time.monotonic() + seconds)

	def cancel(self, reason: str | None = None) -> None:
		"""Отменить эту область и все дочерние."""
		if self._cancelled:
			return
		self._cancelled = True
		if reason:
			self._reason = reason
		self._event.set()
		for child in list(self._children):
			child.cancel(self._reason)

	def remaining(self) -> float | None:
		"""Оставшийся бюджет в секундах или None, если дедлайна нет."""
		if self._deadline is None:
			return None
		return self._deadline - time.monotonic()

	def error(self) -> ScopeError | None:
		"""Ошибка завершения области или None, если область жива."""
		if self._cancelled:
			return ScopeCancelledError(self._reason)
		if self._deadline is not None and time.monotonic() >= self._deadline:
			return DeadlineExceededError()
		return None

	def done(self) -> bool:
		return self.error() is not None

	def check(self) -> None:
		"""Выбросить ошибку сразу, если область уже завершена."""
		scope_error = self.error()
		if scope_error is not None:
			raise scope_error

	async def sleep(self, seconds: float) -> None:
		"""Подождать `seconds` секунд или прерваться при отмене.

		Если пауза пересечёт дедлайн, ошибка выбрасывается сразу, без ожидания.
		"""
		self.check()

		remaining = self.remaining()
		if remaining is not None and seconds > remaining:
			raise DeadlineExceededError(f'Sleeping {seconds:.3f}s would exceed the scope deadline ({remaining:.3f}s left)')

		if seconds <= 0:
			await asyncio.sleep(0)
			self.check()
			return

		try:
			await asyncio.wait_for(self._event.wait(), timeout=seconds)
		except TimeoutError:
			return

		raise ScopeCancelledError(self._reason)

	async def guard(self, awaitable: Awaitable[T]) -> T:
		"""Выполнить awaitable, прервав его при отмене области или по дедлайну.

		Незавершённая задача отменяется, чтобы вызов не продолжал работать после
		завершения области.
		"""
		scope_error = self.error()
		if scope_error is not None:
			if asyncio.iscoroutine(awaitable):
				awaitable.close()
			raise scope_error

		task = asyncio.ensure_future(awaitable)
		cancel_waiter = asyncio.ensure_future(self._event.wait())
		try:
			done, _ = await asyncio.wait(
				{task, cancel_waiter},
				timeout=self.remaining(),
				return_when=asyncio.FIRST_COMPLETED,
			)
		except asyncio.CancelledError:
			task.cancel()
			raise
		finally:
			cancel_waiter.cancel()

		if task in done:
			return task.result()

		task.cancel()
		try:
			await task
		except asyncio.CancelledError:
			pass
		except Exception as e:
			logger.debug(f'Abandoned call finished with {type(e).__name__}: {e}')

		self.check()
		raise DeadlineExceededError()

	def __repr__(self) -> str:
		state = 'cancelled' if self._cancelled else 'active'
		if self._deadline is not None:
			return f'<Scope {state} remaining={self.remaining():.3f}s>'
		return f'<Scope {state}>'
