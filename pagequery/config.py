"""Конфигурация pagequery из переменных окружения."""

import logging
import re
from functools import cache
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_MONITOR = ':9273'

_DURATION_UNITS = {
	'ns': 1e-9,
	'us': 1e-6,
	'µs': 1e-6,
	'ms': 1e-3,
	's': 1.0,
	'm': 60.0,
	'h': 3600.0,
}
_DURATION_PART_RE = re.compile(r'(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)')


def parse_duration(value: str) -> float:
	"""Длительность в формате '1s', '500ms', '1m30s', '2h' в секундах."""
	text = value.strip()
	if text in ('0', '+0', '-0'):
		return 0.0

	sign = 1.0
	if text.startswith(('+', '-')):
		sign = -1.0 if text[0] == '-' else 1.0
		text = text[1:]

	if not text:
		raise ValueError(f'invalid duration: {value!r}')

	total = 0.0
	position = 0
	for match in _DURATION_PART_RE.finditer(text):
		if match.start() != position:
			raise ValueError(f'invalid duration: {value!r}')
		total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
		position = match.end()

	if position != len(text):
		raise ValueError(f'invalid duration: {value!r}')

	return sign * total


class Defaults(BaseModel):
	"""Общие опции, разобранные один раз из строки PAGEQUERY.

	Пример: PAGEQUERY=show,trace,slow=1s,port=9222,cdp,monitor=:9273
	"""

	model_config = ConfigDict(frozen=True)

	show: bool = Field(default=False, description='Disable headless mode')
	trace: bool = Field(default=False, description='Log every resolved locator')
	slow: float = Field(default=0.0, ge=0, description='Slow motion delay in seconds')
	port: str = Field(default='0', description='Remote debugging port')
	cdp: bool = Field(default=False, description='Log protocol traffic')
	monitor: str = Field(default='', description='Monitor server address')

	def debugging_url(self, host: str = '127.0.0.1') -> str | None:
		"""HTTP адрес отладки для RemoteChannel.connect(), если порт задан."""
		if self.port in ('', '0'):
			return None
		return f'http://{host}:{self.port}'


def parse_defaults(options: str) -> Defaults:
	"""Разобрать строку опций: значения через ',', ключ и значение через '='."""
	if not options:
		return Defaults()

	values: dict[str, Any] = {}
	for option in options.split(','):
		key, has_value, value = option.partition('=')
		key = key.strip()

		if key == 'show':
			values['show'] = True
		elif key == 'trace':
			values['trace'] = True
		elif key == 'slow':
			if not has_value:
				raise ValueError('option "slow" requires a duration, e.g. slow=1s')
			values['slow'] = parse_duration(value)
		elif key == 'port':
			if not has_value:
				raise ValueError('option "port" requires a value, e.g. port=9222')
			values['port'] = value
		elif key == 'cdp':
			values['cdp'] = True
		elif key == 'monitor':
			values['monitor'] = value if has_value else DEFAULT_MONITOR
		else:
			raise ValueError(f'no such pagequery option: {key}')

	return Defaults(**values)


class FlatEnvConfig(BaseSettings):
	"""Все переменные окружения в плоском пространстве имен."""

	model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', case_sensitive=True, extra='allow')

	# Логирование
	PAGEQUERY_LOGGING_LEVEL: str = Field(default='info')
	CDP_LOGGING_LEVEL: str = Field(default='WARNING')
	PAGEQUERY_DEBUG_LOG_FILE: str | None = Field(default=None)
	PAGEQUERY_INFO_LOG_FILE: str | None = Field(default=None)

	# Строка общих опций
	PAGEQUERY: str = Field(default='')


class Config:
	"""Доступ к конфигурации, перечитывающий переменные окружения при каждом обращении."""

	def __getattr__(self, attribute_name: str) -> Any:
		if attribute_name.startswith('_'):
			raise AttributeError(f"'{self.__class__.__name__}' object has no attribute '{attribute_name}'")

		env_config_instance = FlatEnvConfig()
		if hasattr(env_config_instance, attribute_name):
			return getattr(env_config_instance, attribute_name)

		raise AttributeError(f"'{self.__class__.__name__}' object has no attribute '{attribute_name}'")


CONFIG = Config()


@cache
def load_defaults() -> Defaults:
	"""Опции из PAGEQUERY, разобранные один раз за процесс."""
	defaults = parse_defaults(CONFIG.PAGEQUERY)
	if defaults != Defaults():
		logger.debug(f'Loaded defaults: {defaults}')
	return defaults
