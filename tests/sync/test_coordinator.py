import asyncio
import unittest

from library_sync.clock import ManualClock
from library_sync.errors import AUTHORIZATION_REQUIRED_MESSAGE, AuthorizationError, TransportError, ValidationError
from library_sync.models import MutationState, Resource, ResourceOrigin, Session, UploadFile
from library_sync.sync.coordinator import MutationCoordinator
from library_sync.sync.reconcile import ReconciliationEngine
from library_sync.sync.scheduler import SettleScheduler
from library_sync.transport.memory import InMemoryTransport


def baseline(resource_id):
    return Resource(id=resource_id, title=f"Baseline {resource_id}", description="", origin=ResourceOrigin.BASELINE)


def uploaded(resource_id):
    return Resource(id=resource_id, title=f"Uploaded {resource_id}", description="", origin=ResourceOrigin.UPLOADED)


def ids(resources):
    return [resource.id for resource in resources]


class BlockingTransport(InMemoryTransport):
    """Lets a test observe the view while a transport call is still in flight."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.observed_during_call = []
        self.engine = None
        self.list_gate = None

    async def list_resources(self):
        resources = await super().list_resources()
        if self.list_gate is not None:
            await self.list_gate.wait()
        return resources

    async def upload_resource(self, upload, token):
        self.observed_during_call.append(ids(self.engine.view()))
        return await super().upload_resource(upload, token)

    async def delete_resource(self, resource_id, token):
        self.observed_during_call.append(ids(self.engine.view()))
        return await super().delete_resource(resource_id, token)


class MutationCoordinatorTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.clock = ManualClock(start_ms=10_000)
        self.transport = BlockingTransport(
            credential="s3cret",
            resources=[uploaded("u1"), uploaded("u2")],
            clock=self.clock,
        )
        self.engine = ReconciliationEngine([baseline("1"), baseline("2")])
        self.transport.engine = self.engine
        self.scheduler = SettleScheduler(self.clock)
        self.coordinator = MutationCoordinator(
            self.engine,
            self.transport,
            scheduler=self.scheduler,
            clock=self.clock,
            settle_delay_ms=500,
        )
        grant = await self.transport.authorize("s3cret")
        self.session = Session(token=grant.token, expires_at_ms=grant.expires_at_ms)
        self.transport.calls.clear()
        await self.coordinator.refresh()
        self.transport.calls.clear()

    def pdf(self, name="my_report-final.pdf", size=2048):
        return UploadFile(filename=name, mime_type="application/pdf", size_bytes=size, content=b"%PDF")

    async def test_upload_without_session_never_touches_transport_or_view(self):
        before = self.engine.view()

        with self.assertRaises(AuthorizationError) as ctx:
            await self.coordinator.upload(self.pdf(), None)

        self.assertEqual(str(ctx.exception), AUTHORIZATION_REQUIRED_MESSAGE)
        self.assertEqual(self.transport.calls, [])
        self.assertEqual(self.engine.view(), before)
        self.assertEqual(self.engine.pending, ())

    async def test_upload_with_expired_session_is_rejected(self):
        expired = Session(token=self.session.token, expires_at_ms=self.clock.now_ms() - 1)

        with self.assertRaises(AuthorizationError):
            await self.coordinator.upload(self.pdf(), expired)

        self.assertEqual(self.transport.calls, [])

    async def test_upload_validation_rejects_wrong_type_without_mutation(self):
        before = self.engine.view()

        with self.assertRaises(ValidationError) as ctx:
            await self.coordinator.upload(UploadFile("notes.txt", "text/plain", 10), self.session)

        self.assertIn("PDF", str(ctx.exception))
        self.assertEqual(self.transport.calls, [])
        self.assertEqual(self.engine.view(), before)

    async def test_upload_validation_rejects_oversized_file(self):
        with self.assertRaises(ValidationError):
            await self.coordinator.upload(self.pdf(size=10_485_761), self.session)

        self.assertEqual(self.engine.pending, ())

    async def test_upload_is_visible_before_transport_returns(self):
        await self.coordinator.upload(self.pdf(), self.session)

        during = self.transport.observed_during_call[0]
        self.assertEqual(len(during), 5)
        self.assertTrue(during[0].startswith("local-"))
        self.assertEqual(during[1:], ["u1", "u2", "1", "2"])

    async def test_upload_confirms_and_shows_backend_record(self):
        mutation = await self.coordinator.upload(self.pdf(), self.session)

        self.assertEqual(mutation.status, MutationState.CONFIRMED)
        view = self.engine.view()
        created = self.transport.resources[0]
        self.assertEqual(view[0], created)
        self.assertEqual(view[0].title, "My Report Final")
        self.assertEqual(len(self.scheduler.pending_tasks), 1)
        self.assertEqual(self.scheduler.pending_tasks[0].due_at_ms, 10_500)

    async def test_deferred_settle_refetches_once_and_releases_pending(self):
        await self.coordinator.upload(self.pdf(), self.session)
        self.transport.calls.clear()

        self.assertEqual(await self.scheduler.run_due(), 0)
        self.clock.advance(500)
        self.assertEqual(await self.scheduler.run_due(), 1)

        self.assertEqual(self.transport.calls, [("list", "")])
        self.assertEqual(self.engine.pending, ())
        self.assertEqual(len(ids(self.engine.view())), 5)
        self.assertEqual(await self.scheduler.run_due(), 0)

    async def test_settle_failure_is_not_retried(self):
        mutation = await self.coordinator.upload(self.pdf(), self.session)
        self.transport.fail_next("list")
        self.clock.advance(500)

        await self.scheduler.run_due()
        self.clock.advance(10_000)
        await self.scheduler.run_due()

        self.assertEqual([call for call in self.transport.calls if call[0] == "list"], [("list", "")])
        self.assertEqual(self.engine.pending, (mutation,))
        self.assertEqual(ids(self.engine.view())[0], mutation.resource_id)

    async def test_upload_transport_failure_rolls_back_and_surfaces_message(self):
        before = self.engine.view()
        self.transport.fail_next("upload", TransportError("Disk full", status=507))

        with self.assertRaises(TransportError) as ctx:
            await self.coordinator.upload(self.pdf(), self.session)

        self.assertEqual(ctx.exception.message, "Disk full")
        self.assertEqual(ctx.exception.status, 507)
        self.assertEqual(self.engine.view(), before)
        self.assertEqual(self.engine.pending, ())
        self.assertEqual(self.scheduler.pending_tasks, [])

    async def test_remove_baseline_requires_session(self):
        before = self.engine.view()

        with self.assertRaises(AuthorizationError):
            await self.coordinator.remove("1", None, ResourceOrigin.BASELINE)

        self.assertEqual(self.engine.view(), before)

    async def test_remove_baseline_is_local_only(self):
        mutation = await self.coordinator.remove("1", self.session, ResourceOrigin.BASELINE)

        self.assertEqual(mutation.status, MutationState.CONFIRMED)
        self.assertEqual(self.transport.calls, [])
        self.assertEqual(ids(self.engine.view()), ["u1", "u2", "2"])

    async def test_remove_uploaded_vanishes_during_call_and_confirms(self):
        mutation = await self.coordinator.remove("u1", self.session, ResourceOrigin.UPLOADED)

        self.assertEqual(self.transport.observed_during_call, [["u2", "1", "2"]])
        self.assertEqual(mutation.status, MutationState.CONFIRMED)
        self.assertEqual(self.transport.calls, [("delete", "u1")])
        self.assertEqual(ids(self.engine.view()), ["u2", "1", "2"])

    async def test_remove_uploaded_failure_restores_original_position(self):
        self.transport.fail_next("delete", TransportError(status=500))

        with self.assertRaises(TransportError) as ctx:
            await self.coordinator.remove("u1", self.session, ResourceOrigin.UPLOADED)

        self.assertEqual(ctx.exception.message, "Request failed. Please try again.")
        self.assertEqual(ids(self.engine.view()), ["u1", "u2", "1", "2"])
        self.assertEqual(self.engine.pending, ())

    async def test_concurrent_mutations_resolve_independently(self):
        self.transport.fail_next("delete")

        await self.coordinator.upload(self.pdf(), self.session)
        with self.assertRaises(TransportError):
            await self.coordinator.remove("u2", self.session, ResourceOrigin.UPLOADED)
        await self.coordinator.remove("2", self.session, ResourceOrigin.BASELINE)

        view = ids(self.engine.view())
        self.assertEqual(view[1:], ["u1", "u2", "1"])

    async def start_gated_refresh(self):
        self.transport.list_gate = asyncio.Event()
        refresh = asyncio.create_task(self.coordinator.refresh())
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        return refresh

    async def finish_gated_refresh(self, refresh):
        self.transport.list_gate.set()
        await refresh
        self.transport.list_gate = None

    async def test_refresh_started_before_upload_does_not_drop_it(self):
        refresh = await self.start_gated_refresh()

        mutation = await self.coordinator.upload(self.pdf(), self.session)
        await self.finish_gated_refresh(refresh)

        self.assertEqual(ids(self.engine.view())[0], mutation.resource_id)
        self.assertEqual(self.engine.pending, (mutation,))

        self.clock.advance(500)
        await self.scheduler.run_due()

        self.assertEqual(self.engine.pending, ())
        self.assertEqual(ids(self.engine.view()), [mutation.resource_id, "u1", "u2", "1", "2"])

    async def test_refresh_started_before_delete_does_not_restore_it(self):
        refresh = await self.start_gated_refresh()

        mutation = await self.coordinator.remove("u1", self.session, ResourceOrigin.UPLOADED)
        await self.finish_gated_refresh(refresh)

        self.assertEqual(ids(self.engine.view()), ["u2", "1", "2"])
        self.assertEqual(self.engine.pending, (mutation,))

        self.clock.advance(500)
        await self.scheduler.run_due()

        self.assertEqual(self.engine.pending, ())
        self.assertEqual(ids(self.engine.view()), ["u2", "1", "2"])

    async def test_remove_uploaded_schedules_settle(self):
        await self.coordinator.remove("u1", self.session, ResourceOrigin.UPLOADED)

        self.assertEqual(len(self.scheduler.pending_tasks), 1)
        self.assertEqual(self.scheduler.pending_tasks[0].due_at_ms, 10_500)


if __name__ == "__main__":
    unittest.main()
