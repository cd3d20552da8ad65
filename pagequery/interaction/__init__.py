"""Запросы элементов, поиск и ожидания на уровне страницы."""

from .element import BoundingBox, Element, Elements
from .page import Page, Pages, list_pages
from .resolver import QueryResolver
from .search import SearchSession
from .synchronizer import Synchronizer

__all__ = ['BoundingBox', 'Element', 'Elements', 'Page', 'Pages', 'list_pages', 'QueryResolver', 'SearchSession', 'Synchronizer']
