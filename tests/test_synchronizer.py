"""Tests for visibility, stability and script waits."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from pagequery.exceptions import InvalidHandleError, WaitConditionError
from pagequery.handle import ContextBinding, ObjectHandle
from pagequery.interaction.resolver import QueryResolver
from pagequery.interaction.synchronizer import Synchronizer
from pagequery.js import SHAPE
from pagequery.retry import CountPolicy, FixedPolicy

A = {'x': 10, 'y': 20, 'width': 100, 'height': 30, 'visible': True}
B = {'x': 10, 'y': 60, 'width': 100, 'height': 30, 'visible': True}
C = {'x': 10, 'y': 90, 'width': 100, 'height': 30, 'visible': True}
HIDDEN = {'x': 0, 'y': 0, 'width': 0, 'height': 0, 'visible': False}


def _shapes(*samples: dict) -> AsyncMock:
	return AsyncMock(side_effect=[{'type': 'object', 'value': sample} for sample in samples])


@pytest.fixture
def resolver():
	return MagicMock(spec=QueryResolver)


@pytest.fixture
def handle():
	return ObjectHandle(page_id='page-1', object_id='el-1', binding=ContextBinding())


class TestShape:
	@pytest.mark.asyncio
	async def test_shape_uses_element_as_this(self, resolver, handle):
		resolver.evaluate = _shapes(A)
		assert await Synchronizer(resolver).shape(handle) == A
		resolver.evaluate.assert_awaited_once_with(handle.binding, SHAPE, this_id='el-1', by_value=True)

	@pytest.mark.asyncio
	async def test_empty_handle(self, resolver):
		resolver.evaluate = _shapes(A)
		empty = ObjectHandle(page_id='page-1', object_id='')
		with pytest.raises(InvalidHandleError):
			await Synchronizer(resolver).shape(empty)
		resolver.evaluate.assert_not_called()


class TestVisibility:
	@pytest.mark.asyncio
	async def test_wait_visible_polls_until_visible(self, resolver, handle):
		resolver.evaluate = _shapes(HIDDEN, HIDDEN, A)
		await Synchronizer(resolver).wait_visible(handle, FixedPolicy(interval=0))
		assert resolver.evaluate.await_count == 3

	@pytest.mark.asyncio
	async def test_wait_invisible(self, resolver, handle):
		resolver.evaluate = _shapes(A, HIDDEN)
		await Synchronizer(resolver).wait_invisible(handle, FixedPolicy(interval=0))
		assert resolver.evaluate.await_count == 2

	@pytest.mark.asyncio
	async def test_no_policy_fails_after_one_check(self, resolver, handle):
		resolver.evaluate = _shapes(HIDDEN)
		with pytest.raises(WaitConditionError, match='element visible'):
			await Synchronizer(resolver).wait_visible(handle, None)
		assert resolver.evaluate.await_count == 1

	@pytest.mark.asyncio
	async def test_exhausted_policy(self, resolver, handle):
		resolver.evaluate = _shapes(A, A, A)
		with pytest.raises(WaitConditionError):
			await Synchronizer(resolver).wait_invisible(handle, CountPolicy(max_retries=2))


class TestStability:
	"""Two consecutive equal samples are needed, one is never enough."""

	@pytest.mark.asyncio
	async def test_succeeds_at_second_b(self, resolver, handle):
		resolver.evaluate = _shapes(A, A, B, B, C)
		await Synchronizer(resolver).wait_stable(handle, FixedPolicy(interval=0))
		assert resolver.evaluate.await_count == 4

	@pytest.mark.asyncio
	async def test_moving_element_is_not_stable(self, resolver, handle):
		resolver.evaluate = _shapes(A, A, B, C)
		with pytest.raises(WaitConditionError, match='element stable'):
			await Synchronizer(resolver).wait_stable(handle, CountPolicy(max_retries=2))
		assert resolver.evaluate.await_count == 4

	@pytest.mark.asyncio
	async def test_single_sample_is_not_enough(self, resolver, handle):
		resolver.evaluate = _shapes(A, A)
		with pytest.raises(WaitConditionError):
			await Synchronizer(resolver).wait_stable(handle, None)
		assert resolver.evaluate.await_count == 2


class TestScriptWait:
	@pytest.mark.asyncio
	async def test_wait_for_predicate(self, resolver, handle):
		resolver.evaluate = AsyncMock(
			side_effect=[{'type': 'boolean', 'value': False}, {'type': 'boolean', 'value': True}]
		)
		script = '(name) => this.classList.contains(name)'
		await Synchronizer(resolver).wait(handle, script, ('ready',), FixedPolicy(interval=0))
		assert resolver.evaluate.await_count == 2
		resolver.evaluate.assert_awaited_with(handle.binding, script, ('ready',), this_id='el-1', by_value=True)

	@pytest.mark.asyncio
	async def test_truthy_value_is_not_true(self, resolver, handle):
		resolver.evaluate = AsyncMock(return_value={'type': 'string', 'value': 'yes'})
		with pytest.raises(WaitConditionError):
			await Synchronizer(resolver).wait(handle, '() => "yes"', (), None)
