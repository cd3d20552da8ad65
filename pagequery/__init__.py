"""Поиск элементов, повторы и ожидания поверх протокола удалённой отладки браузера"""

import os
from typing import TYPE_CHECKING

from pagequery.logging_config import setup_logging

# Setup logging
if os.environ.get('PAGEQUERY_SETUP_LOGGING', 'true').lower() != 'false':
	from pagequery.config import CONFIG

	logger = setup_logging(debug_log_file=CONFIG.PAGEQUERY_DEBUG_LOG_FILE, info_log_file=CONFIG.PAGEQUERY_INFO_LOG_FILE)
else:
	import logging

	logger = logging.getLogger('pagequery')

# Типы для lazy imports
if TYPE_CHECKING:
	from pagequery.channel import RemoteChannel
	from pagequery.config import Defaults, load_defaults
	from pagequery.handle import ContextBinding, ObjectHandle
	from pagequery.interaction.element import Element, Elements
	from pagequery.interaction.page import Page, Pages, list_pages
	from pagequery.interaction.search import SearchSession
	from pagequery.retry import BackoffPolicy, CountPolicy, FixedPolicy, RetryPolicy
	from pagequery.scope import Scope

# Lazy imports mapping
_LAZY_IMPORTS = {
	'RemoteChannel': ('pagequery.channel', 'RemoteChannel'),
	'Defaults': ('pagequery.config', 'Defaults'),
	'load_defaults': ('pagequery.config', 'load_defaults'),
	'ContextBinding': ('pagequery.handle', 'ContextBinding'),
	'ObjectHandle': ('pagequery.handle', 'ObjectHandle'),
	'Element': ('pagequery.interaction.element', 'Element'),
	'Elements': ('pagequery.interaction.element', 'Elements'),
	'Page': ('pagequery.interaction.page', 'Page'),
	'Pages': ('pagequery.interaction.page', 'Pages'),
	'list_pages': ('pagequery.interaction.page', 'list_pages'),
	'SearchSession': ('pagequery.interaction.search', 'SearchSession'),
	'RetryPolicy': ('pagequery.retry', 'RetryPolicy'),
	'FixedPolicy': ('pagequery.retry', 'FixedPolicy'),
	'CountPolicy': ('pagequery.retry', 'CountPolicy'),
	'BackoffPolicy': ('pagequery.retry', 'BackoffPolicy'),
	'Scope': ('pagequery.scope', 'Scope'),
}


def __getattr__(name: str):
	"""Lazy import mechanism."""
	if name in _LAZY_IMPORTS:
		module_path, attr_name = _LAZY_IMPORTS[name]
		try:
			from importlib import import_module

			module = import_module(module_path)
			attr = getattr(module, attr_name)
			globals()[name] = attr
			return attr
		except ImportError as e:
			raise ImportError(f'Failed to import {name} from {module_path}: {e}') from e
	raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = [
	'RemoteChannel',
	'Defaults',
	'load_defaults',
	'ContextBinding',
	'ObjectHandle',
	'Element',
	'Elements',
	'Page',
	'Pages',
	'list_pages',
	'SearchSession',
	'RetryPolicy',
	'FixedPolicy',
	'CountPolicy',
	'BackoffPolicy',
	'Scope',
]
