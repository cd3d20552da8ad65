"""Tests for Element: derived navigation, info and waits."""

import pytest
import pytest_asyncio

from _fakes import NULL, array, array_properties, by_value, evaluated, node
from pagequery.channel import RemoteChannel
from pagequery.exceptions import (
	ElementNotFoundError,
	ExpectElementError,
	RemoteObjectGoneError,
	ScopeCancelledError,
	WaitConditionError,
)
from pagequery.interaction.element import Element, Elements
from pagequery.interaction.page import Page
from pagequery.js import PARENTS, fn_this
from pagequery.retry import FixedPolicy


@pytest.fixture
def page(client) -> Page:
	return Page(RemoteChannel(client), 'target-1', session_id='session-1')


@pytest_asyncio.fixture
async def element(client, page) -> Element:
	client.send.Runtime.evaluate.return_value = evaluated(node('form-1'))
	found = await page.element('form')
	client.send.Runtime.evaluate.reset_mock()
	return found


class TestElements:
	def test_empty(self):
		elements = Elements()
		assert elements.empty()
		assert elements.first() is None
		assert elements.last() is None


class TestDerivedNavigation:
	"""Element queries use the element itself as `this`."""

	@pytest.mark.asyncio
	async def test_child_element(self, client, element):
		client.send.Runtime.callFunctionOn.return_value = evaluated(node('input-1'))

		child = await element.element('input[name=q]')

		assert child.object_id == 'input-1'
		params = client.send.Runtime.callFunctionOn.await_args.kwargs['params']
		assert params['objectId'] == 'form-1'
		assert params['arguments'] == [{'value': 'input[name=q]'}]
		client.send.Runtime.evaluate.assert_not_called()

	@pytest.mark.asyncio
	async def test_single_shot_by_default(self, client, element):
		with pytest.raises(ElementNotFoundError):
			await element.element('input')
		assert client.send.Runtime.callFunctionOn.await_count == 1

	@pytest.mark.asyncio
	async def test_explicit_policy_retries(self, client, element):
		client.send.Runtime.callFunctionOn.side_effect = [evaluated(NULL), evaluated(NULL), evaluated(node('input-1'))]
		child = await element.element('input', policy=FixedPolicy(interval=0))
		assert child.object_id == 'input-1'
		assert client.send.Runtime.callFunctionOn.await_count == 3

	@pytest.mark.asyncio
	async def test_parent_next_previous(self, client, element):
		client.send.Runtime.callFunctionOn.side_effect = [
			evaluated(node('body')),
			evaluated(node('footer')),
			evaluated(NULL),
		]
		assert (await element.parent()).object_id == 'body'
		assert (await element.next()).object_id == 'footer'
		with pytest.raises(ElementNotFoundError):
			await element.previous()

	@pytest.mark.asyncio
	async def test_parents(self, client, element):
		client.send.Runtime.callFunctionOn.return_value = evaluated(array('arr-1'))
		client.send.Runtime.getProperties.return_value = {'result': array_properties(node('div-1'), node('body'))}

		parents = await element.parents('div, body')

		assert [parent.object_id for parent in parents] == ['div-1', 'body']
		params = client.send.Runtime.callFunctionOn.await_args.kwargs['params']
		assert params['functionDeclaration'] == fn_this(PARENTS)
		client.send.Runtime.releaseObject.assert_awaited_once()

	@pytest.mark.asyncio
	async def test_has(self, client, element):
		assert not await element.has('input')
		client.send.Runtime.callFunctionOn.return_value = evaluated(node('input-1'))
		assert await element.has_x('.//input')

	@pytest.mark.asyncio
	async def test_derived_elements_keep_binding(self, client, element):
		client.send.Runtime.callFunctionOn.return_value = evaluated(node('input-1'))
		timed = element.with_timeout(30)
		child = await timed.element('input')
		assert child.scope is timed.scope


class TestInfo:
	@pytest.mark.asyncio
	async def test_describe(self, client, element):
		client.send.DOM.describeNode.return_value = {'node': {'nodeName': 'FORM', 'backendNodeId': 5}}
		assert (await element.describe())['nodeName'] == 'FORM'
		params = client.send.DOM.describeNode.await_args.kwargs['params']
		assert params == {'objectId': 'form-1', 'depth': 1, 'pierce': False}

	@pytest.mark.asyncio
	async def test_shadow_root(self, client, element):
		client.send.DOM.describeNode.return_value = {'node': {'nodeName': 'X-APP', 'shadowRoots': [{'backendNodeId': 77}]}}
		client.send.DOM.resolveNode.return_value = {'object': {'type': 'object', 'objectId': 'shadow-1'}}

		shadow_root = await element.shadow_root()

		assert shadow_root.object_id == 'shadow-1'
		assert client.send.DOM.resolveNode.await_args.kwargs['params'] == {'backendNodeId': 77}

	@pytest.mark.asyncio
	async def test_no_shadow_root(self, client, element):
		client.send.DOM.describeNode.return_value = {'node': {'nodeName': 'FORM'}}
		with pytest.raises(ExpectElementError):
			await element.shadow_root()

	@pytest.mark.asyncio
	async def test_box_and_visible(self, client, element):
		client.send.Runtime.callFunctionOn.return_value = by_value(
			{'x': 1.5, 'y': 2, 'width': 30, 'height': 40, 'visible': True}
		)
		assert await element.box() == {'x': 1.5, 'y': 2, 'width': 30, 'height': 40}
		assert await element.visible()

	@pytest.mark.asyncio
	async def test_eval(self, client, element):
		client.send.Runtime.callFunctionOn.return_value = by_value('search')
		assert await element.eval('(attr) => this.getAttribute(attr)', 'role') == 'search'
		params = client.send.Runtime.callFunctionOn.await_args.kwargs['params']
		assert params['returnByValue'] is True
		assert params['arguments'] == [{'value': 'role'}]


class TestLifecycle:
	@pytest.mark.asyncio
	async def test_release_then_use(self, client, element):
		await element.release()
		assert client.send.Runtime.releaseObject.await_args.kwargs['params'] == {'objectId': 'form-1'}

		client.send.Runtime.callFunctionOn.side_effect = RuntimeError(
			{'code': -32000, 'message': 'Could not find object with given id'}
		)
		with pytest.raises(RemoteObjectGoneError):
			await element.element('input')

	@pytest.mark.asyncio
	async def test_cancelled_element(self, client, element):
		with pytest.raises(ScopeCancelledError):
			await element.cancel().describe()
		client.send.DOM.describeNode.assert_not_called()
		await element.describe()

	@pytest.mark.asyncio
	async def test_timeout_round_trip(self, element):
		restored = element.with_timeout(0).cancel_timeout()
		assert restored.scope is element.scope
		assert restored.object_id == element.object_id


class TestWaits:
	@pytest.mark.asyncio
	async def test_wait_visible_uses_binding_policy(self, client, element):
		client.send.Runtime.callFunctionOn.side_effect = [
			by_value({'x': 0, 'y': 0, 'width': 0, 'height': 0, 'visible': False}),
			by_value({'x': 0, 'y': 0, 'width': 10, 'height': 10, 'visible': True}),
		]
		await element.with_retry_policy(FixedPolicy(interval=0)).wait_visible()
		assert client.send.Runtime.callFunctionOn.await_count == 2

	@pytest.mark.asyncio
	async def test_wait_without_policy(self, client, element):
		client.send.Runtime.callFunctionOn.return_value = by_value(False)
		with pytest.raises(WaitConditionError):
			await element.with_retry_policy(None).wait('() => this.checked')
