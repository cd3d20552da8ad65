"""JavaScript функции, которыми локаторы ищут элементы на странице.

Функции записаны стрелочными: при вызове через fn_this() `this` внутри них
лексически равен объекту-получателю, а через fn_apply() в глобальном
контексте `this` равен window.
"""

import json
from typing import Any

# Корень поиска: документ, если this это window, иначе сам элемент
_ROOT = '(this.document || this)'

ELEMENT = f'(selector) => {_ROOT}.querySelector(selector)'

ELEMENTS = f'(selector) => Array.from({_ROOT}.querySelectorAll(selector))'

ELEMENT_X = f"""(xpath) => {{
	const root = {_ROOT}
	const doc = root.ownerDocument || root
	return doc.evaluate(xpath, root, null, XPathResult.FIRST_ORDERED_NODE_TYPE).singleNodeValue
}}"""

ELEMENTS_X = f"""(xpath) => {{
	const root = {_ROOT}
	const doc = root.ownerDocument || root
	const iter = doc.evaluate(xpath, root, null, XPathResult.ORDERED_NODE_SNAPSHOT_TYPE)
	const list = []
	for (let i = 0; i < iter.snapshotLength; i++) {{
		list.push(iter.snapshotItem(i))
	}}
	return list
}}"""

ELEMENT_MATCHES = f"""(selector, regex) => {{
	const reg = new RegExp(regex)
	const list = {_ROOT}.querySelectorAll(selector)
	return Array.from(list).find(el => reg.test(el.innerText || el.textContent)) || null
}}"""

PARENTS = """(selector) => {
	const list = []
	let node = this.parentElement
	while (node) {
		if (node.matches(selector)) {
			list.push(node)
		}
		node = node.parentElement
	}
	return list
}"""

PARENT = '() => this.parentElement'

NEXT = '() => this.nextElementSibling'

PREVIOUS = '() => this.previousElementSibling'

# Геометрия и флаги видимости за один вызов
SHAPE = """() => {
	const rect = this.getBoundingClientRect()
	const style = window.getComputedStyle(this)
	const visible = this.isConnected &&
		style.display !== 'none' &&
		style.visibility !== 'hidden' &&
		!!(rect.top || rect.bottom || rect.width || rect.height)
	return { x: rect.left, y: rect.top, width: rect.width, height: rect.height, visible }
}"""

LOCATION_HREF = '() => location.href'


def fn_apply(js: str, args: list[Any] | tuple[Any, ...]) -> str:
	"""Выражение, вызывающее функцию с аргументами в глобальном контексте."""
	return f'({js}).apply(this, {json.dumps(list(args))})'


def fn_this(js: str) -> str:
	"""Объявление функции для Runtime.callFunctionOn, пробрасывающее this."""
	return f'function() {{ return ({js}).apply(this, arguments) }}'
