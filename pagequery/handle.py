"""Дескрипторы удалённых объектов и их привязка к области выполнения."""

from pydantic import BaseModel, ConfigDict, Field

from pagequery.exceptions import InvalidHandleError
from pagequery.retry import BackoffPolicy, RetryPolicy
from pagequery.scope import Scope


class ContextBinding(BaseModel):
	"""Область выполнения и стратегия повторов, привязанные к дескриптору.

	Неизменяема: каждая перепривязка возвращает новое значение, поэтому
	независимые цепочки вызовов могут ответвляться от одного дескриптора с
	разными бюджетами времени.
	"""

	model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

	scope: Scope = Field(default_factory=Scope.background)
	retry_policy: RetryPolicy | None = Field(default_factory=BackoffPolicy)
	# Привязка до последнего with_timeout(), для cancel_timeout()
	timeout_parent: 'ContextBinding | None' = None

	def with_context(self, scope: Scope) -> 'ContextBinding':
		return self.model_copy(update={'scope': scope, 'timeout_parent': None})

	def with_timeout(self, seconds: float) -> 'ContextBinding':
		return self.model_copy(update={'scope': self.scope.with_timeout(seconds), 'timeout_parent': self})

	def cancel_timeout(self) -> 'ContextBinding':
		"""Снять последний дедлайн, не меняя состояние отмены.

		Повторные вызовы снимают вложенные дедлайны по одному, стратегия
		повторов остаётся текущей.
		"""
		parent = self.timeout_parent
		if parent is None:
			return self
		return self.model_copy(update={'scope': parent.scope, 'timeout_parent': parent.timeout_parent})

	def cancel(self) -> 'ContextBinding':
		"""Новая привязка с отменённой дочерней областью; исходная не затрагивается."""
		cancelled_scope = self.scope.child()
		cancelled_scope.cancel()
		return self.model_copy(update={'scope': cancelled_scope, 'timeout_parent': None})

	def with_retry_policy(self, policy: RetryPolicy | None) -> 'ContextBinding':
		return self.model_copy(update={'retry_policy': policy})


class ObjectHandle(BaseModel):
	"""Непрозрачная ссылка на живой удалённый объект.

	Время жизни объекта определяет удалённая сторона и явный release();
	на один объект могут ссылаться несколько дескрипторов.
	"""

	model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

	page_id: str
	object_id: str
	binding: ContextBinding = Field(default_factory=ContextBinding)

	@property
	def scope(self) -> Scope:
		return self.binding.scope

	def ensure_ready(self) -> None:
		"""Проверить дескриптор перед любым вызовом: идентификатор и живая область."""
		if not self.object_id:
			raise InvalidHandleError()
		self.binding.scope.check()

	def rebind(self, binding: ContextBinding) -> 'ObjectHandle':
		return self.model_copy(update={'binding': binding})

	def with_context(self, scope: Scope) -> 'ObjectHandle':
		return self.rebind(self.binding.with_context(scope))

	def with_timeout(self, seconds: float) -> 'ObjectHandle':
		return self.rebind(self.binding.with_timeout(seconds))

	def cancel_timeout(self) -> 'ObjectHandle':
		return self.rebind(self.binding.cancel_timeout())

	def cancel(self) -> 'ObjectHandle':
		return self.rebind(self.binding.cancel())

	def with_retry_policy(self, policy: RetryPolicy | None) -> 'ObjectHandle':
		return self.rebind(self.binding.with_retry_policy(policy))
