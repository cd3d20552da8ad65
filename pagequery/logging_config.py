import logging
import sys

from dotenv import load_dotenv

load_dotenv()

from pagequery.config import CONFIG, load_defaults

TRACE_LEVEL = 5

_CDP_LOGGER_NAMES = [
	'websockets.client',
	'cdp_use',
	'cdp_use.client',
	'cdp_use.cdp',
	'cdp_use.cdp.registry',
]


def add_logging_level(name: str, level_value: int, method_name: str | None = None):
	"""
	Добавляет новый уровень логирования в модуль `logging` и в текущий класс
	логгера.

	`name` становится атрибутом модуля `logging` со значением `level_value`,
	`method_name` (по умолчанию `name.lower()`) становится методом логгера.
	Если имя уже занято, выбрасывается `AttributeError`.

	Пример
	-------
	>>> add_logging_level('TRACE', logging.DEBUG - 5)
	>>> logging.getLogger(__name__).trace('that worked')
	"""
	if not method_name:
		method_name = name.lower()

	if hasattr(logging, name):
		raise AttributeError(f'{name} already defined in logging module')
	if hasattr(logging, method_name):
		raise AttributeError(f'{method_name} already defined in logging module')
	if hasattr(logging.getLoggerClass(), method_name):
		raise AttributeError(f'{method_name} already defined in logger class')

	def log_at_level(self, message, *args, **kwargs):
		if self.isEnabledFor(level_value):
			self._log(level_value, message, args, **kwargs)

	def log_to_root(message, *args, **kwargs):
		logging.log(level_value, message, *args, **kwargs)

	logging.addLevelName(level_value, name)
	setattr(logging, name, level_value)
	setattr(logging.getLoggerClass(), method_name, log_at_level)
	setattr(logging, method_name, log_to_root)


class PageQueryFormatter(logging.Formatter):
	"""Укорачивает имена логгеров pagequery вне режима DEBUG."""

	def __init__(self, format_string, level_value):
		super().__init__(format_string)
		self.level_value = level_value

	def format(self, record):
		if self.level_value > logging.DEBUG and isinstance(record.name, str) and record.name.startswith('pagequery.'):
			if record.name != 'pagequery.trace':
				record.name = record.name.split('.')[-1]
		return super().format(record)


def setup_logging(stream=None, log_level=None, force_setup=False, debug_log_file=None, info_log_file=None):
	"""Настроить логирование pagequery.

	Args:
		stream: Поток вывода логов (по умолчанию sys.stdout)
		log_level: Уровень логирования (по умолчанию CONFIG.PAGEQUERY_LOGGING_LEVEL)
		force_setup: Перенастроить, даже если обработчики уже есть
		debug_log_file: Файл только для debug логов
		info_log_file: Файл только для info логов
	"""
	try:
		add_logging_level('TRACE', TRACE_LEVEL)
	except AttributeError:
		pass  # Уровень уже добавлен

	level_type = (log_level or CONFIG.PAGEQUERY_LOGGING_LEVEL).lower()

	if logging.getLogger().hasHandlers() and not force_setup:
		return logging.getLogger('pagequery')

	root_logger = logging.getLogger()
	root_logger.handlers = []

	if level_type == 'trace':
		effective_level = TRACE_LEVEL
	elif level_type == 'debug':
		effective_level = logging.DEBUG
	elif level_type in ('warning', 'error'):
		effective_level = getattr(logging, level_type.upper())
	else:
		effective_level = logging.INFO

	console_handler = logging.StreamHandler(stream or sys.stdout)
	console_handler.setLevel(effective_level)
	console_handler.setFormatter(PageQueryFormatter('%(levelname)-8s [%(name)s] %(message)s', effective_level))
	root_logger.addHandler(console_handler)

	file_handler_list = []

	if debug_log_file:
		debug_file_handler = logging.FileHandler(debug_log_file, encoding='utf-8')
		debug_file_handler.setLevel(logging.DEBUG)
		debug_file_handler.setFormatter(PageQueryFormatter('%(asctime)s - %(levelname)-8s [%(name)s] %(message)s', logging.DEBUG))
		file_handler_list.append(debug_file_handler)
		root_logger.addHandler(debug_file_handler)

	if info_log_file:
		info_file_handler = logging.FileHandler(info_log_file, encoding='utf-8')
		info_file_handler.setLevel(logging.INFO)
		info_file_handler.setFormatter(PageQueryFormatter('%(asctime)s - %(levelname)-8s [%(name)s] %(message)s', logging.INFO))
		file_handler_list.append(info_file_handler)
		root_logger.addHandler(info_file_handler)

	# DEBUG, если включен файл debug логов
	final_log_level = min(logging.DEBUG, effective_level) if debug_log_file else effective_level
	root_logger.setLevel(final_log_level)

	main_logger = logging.getLogger('pagequery')
	main_logger.propagate = False
	main_logger.handlers = []
	main_logger.addHandler(console_handler)
	for file_handler in file_handler_list:
		main_logger.addHandler(file_handler)
	main_logger.setLevel(final_log_level)

	# Трассировка локаторов видна при опции trace даже на уровне WARNING
	defaults = load_defaults()
	if defaults.trace:
		logging.getLogger('pagequery.trace').setLevel(logging.INFO)
		console_handler.setLevel(min(console_handler.level, logging.INFO))

	# Логи протокола: опция cdp включает DEBUG, иначе CDP_LOGGING_LEVEL
	if defaults.cdp:
		cdp_logging_level = logging.DEBUG
	else:
		cdp_logging_level = getattr(logging, CONFIG.CDP_LOGGING_LEVEL.upper(), logging.WARNING)

	for cdp_logger_name in _CDP_LOGGER_NAMES:
		cdp_logger_instance = logging.getLogger(cdp_logger_name)
		cdp_logger_instance.setLevel(cdp_logging_level)
		cdp_logger_instance.handlers = []
		cdp_logger_instance.addHandler(console_handler)
		cdp_logger_instance.propagate = False

	# Заглушить логгеры сторонних библиотек
	external_logger_names = [
		'httpx',
		'httpcore',
		'asyncio',
		'websockets',
	]
	for external_logger_name in external_logger_names:
		external_logger = logging.getLogger(external_logger_name)
		external_logger.setLevel(logging.ERROR)
		external_logger.propagate = False

	return main_logger
