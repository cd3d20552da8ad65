"""Движок повторов и стратегии пауз между попытками."""

import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Iterator
from itertools import count, repeat

from pydantic import BaseModel, ConfigDict, Field

from pagequery.exceptions import PageQueryError, RetriesExhaustedError
from pagequery.scope import Scope

logger = logging.getLogger(__name__)

Attempt = Callable[[], Awaitable[bool]]


class Sleeper:
	"""Одна петля повторов: ждёт следующий интервал или выбрасывает ошибку.

	Экземпляр одноразовый и хранит счётчик пауз, поэтому стратегия создаёт
	новый Sleeper на каждый вызов retry().
	"""

	def __init__(self, intervals: Iterator[float], max_retries: int | None = None):
		self._intervals = intervals
		self._max_retries = max_retries
		self.slept = 0

	async def __call__(self, scope: Scope) -> None:
		if self._max_retries is not None and self.slept >= self._max_retries:
			raise RetriesExhaustedError(self._max_retries)
		self.slept += 1
		await scope.sleep(next(self._intervals))


class RetryPolicy(BaseModel, ABC):
	"""Стратегия пауз между попытками."""

	model_config = ConfigDict(frozen=True)

	max_retries: int | None = Field(default=None, ge=0, description='Pauses allowed after the first attempt; None means unbounded')

	@abstractmethod
	def intervals(self) -> Iterator[float]:
		"""Бесконечная последовательность интервалов в секундах."""

	def sleeper(self) -> Sleeper:
		return Sleeper(self.intervals(), self.max_retries)


class FixedPolicy(RetryPolicy):
	"""Одинаковая пауза между попытками."""

	interval: float = Field(default=0.1, ge=0)

	def intervals(self) -> Iterator[float]:
		return repeat(self.interval)


class CountPolicy(FixedPolicy):
	"""Ограниченное число попыток без паузы по умолчанию."""

	interval: float = Field(default=0.0, ge=0)
	max_retries: int | None = Field(default=3, ge=0)


class BackoffPolicy(RetryPolicy):
	"""Экспоненциальная пауза: от `initial` до `maximum` с множителем `factor`."""

	initial: float = Field(default=0.1, gt=0)
	maximum: float = Field(default=1.0, gt=0)
	factor: float = Field(default=2.0, ge=1)

	def intervals(self) -> Iterator[float]:
		return (min(self.maximum, self.initial * self.factor**step) for step in count())


async def retry(
	scope: Scope,
	policy: RetryPolicy | None,
	attempt: Attempt,
	give_up: Callable[[], PageQueryError],
) -> None:
	"""Повторять `attempt`, пока она не вернёт True.

	Только False означает "ещё нет" и ведёт к следующей попытке; любое
	исключение из `attempt` завершает цикл как есть. Без стратегии делается
	ровно одна попытка, и при неудаче сразу выбрасывается `give_up()`.
	Отмена или дедлайн области во время паузы дают ошибку области, а не
	`give_up()`.
	"""
	sleeper = policy.sleeper() if policy is not None else None
	attempts = 0

	while True:
		scope.check()
		attempts += 1
		if await attempt():
			if attempts > 1:
				logger.debug(f'Succeeded after {attempts} attempts')
			return

		if sleeper is None:
			raise give_up()

		try:
			await sleeper(scope)
		except RetriesExhaustedError as e:
			logger.debug(f'Giving up after {attempts} attempts: {e}')
			raise give_up() from e
