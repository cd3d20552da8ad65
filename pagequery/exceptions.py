"""Исключения для всех компонентов системы."""

from typing import Any


# Базовые исключения
class PageQueryError(Exception):
	"""Базовое исключение для всех ошибок pagequery."""

	pass


class InvalidHandleError(PageQueryError):
	"""Дескриптор удалённого объекта без идентификатора."""

	def __init__(self, message: str = 'Object handle has an empty object id'):
		super().__init__(message)
		self.message = message


# Ошибки поиска элементов
class ElementNotFoundError(PageQueryError):
	"""Одиночный запрос ничего не нашёл: попытки исчерпаны или не запрашивались."""

	def __init__(self, query: str | None = None):
		self.query = query
		message = 'Cannot find element' if query is None else f'Cannot find element: {query}'
		super().__init__(message)
		self.message = message


class ExpectElementError(PageQueryError):
	"""Значение получено, но это не DOM-элемент. Никогда не повторяется."""

	def __init__(self, remote_value: Any):
		self.remote_value = remote_value
		message = f'Expect js to return an element, but got: {remote_value}'
		super().__init__(message)
		self.message = message


class ExpectElementsError(PageQueryError):
	"""Ожидался массив элементов, но получено что-то другое."""

	def __init__(self, remote_value: Any):
		self.remote_value = remote_value
		message = f'Expect js to return an array of elements, but got: {remote_value}'
		super().__init__(message)
		self.message = message


class EvalError(PageQueryError):
	"""Скрипт выбросил исключение на стороне страницы."""

	def __init__(self, description: str, exception_details: dict[str, Any] | None = None):
		self.description = description
		self.exception_details = exception_details or {}
		message = f'[pagequery] {description}'
		super().__init__(message)
		self.message = message


# Ошибки области выполнения
class ScopeError(PageQueryError):
	"""Область выполнения завершилась раньше операции."""

	pass


class ScopeCancelledError(ScopeError):
	"""Область выполнения отменена."""

	def __init__(self, message: str = 'Scope cancelled'):
		super().__init__(message)
		self.message = message


class DeadlineExceededError(ScopeError):
	"""Дедлайн области истёк или будет превышен следующим ожиданием."""

	def __init__(self, message: str = 'Scope deadline exceeded'):
		super().__init__(message)
		self.message = message


class RetriesExhaustedError(PageQueryError):
	"""Стратегия повторов исчерпала разрешённое число пауз."""

	def __init__(self, tries: int):
		self.tries = tries
		message = f'Max sleep count {tries} exceeded'
		super().__init__(message)
		self.message = message


# Ошибки протокола
class RemoteError(PageQueryError):
	"""Структурированная ошибка, возвращённая удалённой стороной."""

	def __init__(self, code: int | None, message: str, data: Any = None, method: str | None = None):
		self.code = code
		self.message = message
		self.data = data
		self.method = method
		super().__init__(f'{{"code":{code},"message":"{message}","data":"{data or ""}"}}')


class RemoteObjectGoneError(RemoteError):
	"""Удалённый объект больше не существует (освобождён или страница перешла дальше)."""

	pass


# Ошибки сессии поиска
class SearchReleasedError(PageQueryError):
	"""Чтение из уже освобождённой сессии поиска."""

	def __init__(self, search_id: str):
		self.search_id = search_id
		message = f'Search session {search_id} has already been released'
		super().__init__(message)
		self.message = message


class SearchRangeError(PageQueryError):
	"""Запрошенный срез выходит за границы результатов поиска."""

	def __init__(self, from_index: int, to_index: int, result_count: int):
		self.from_index = from_index
		self.to_index = to_index
		self.result_count = result_count
		message = f'Search range [{from_index}, {to_index}) is out of bounds for {result_count} results'
		super().__init__(message)
		self.message = message


class WaitConditionError(PageQueryError):
	"""Условие ожидания не выполнено, а повторы не запрашивались."""

	def __init__(self, condition: str):
		self.condition = condition
		message = f'Condition not met: {condition}'
		super().__init__(message)
		self.message = message


class PageNotFoundError(PageQueryError):
	"""Среди открытых страниц нет подходящей."""

	def __init__(self, query: str):
		self.query = query
		message = f'Cannot find page: {query}'
		super().__init__(message)
		self.message = message
