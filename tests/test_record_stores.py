"""Unit tests for the record stores and the devices adapter."""

import json

import httpx
import pytest

from upsnap_core.common.results import DevicesErrorCodes
from upsnap_core.core.domain.repositories.record_store import DEVICES_COLLECTION
from upsnap_core.infrastructure.store.adapters.devices.devices_adapter import (
    StoreDevicesAdapter,
)
from upsnap_core.infrastructure.store.adapters.devices.devices_serializers import (
    DeviceSerializer,
)
from upsnap_core.infrastructure.store.http.http_store import HttpRecordStore
from upsnap_core.infrastructure.store.memory.memory_store import InMemoryRecordStore


class TestInMemoryRecordStore:
    """Tests for the in-memory store."""

    @pytest.mark.asyncio
    async def test_save_assigns_id_and_notifies(self, logger):
        store = InMemoryRecordStore(logger=logger)
        events = []

        async def hook(event):
            events.append((event.action, event.collection, event.record["id"]))

        store.subscribe(hook)

        created = await store.save(DEVICES_COLLECTION, {"name": "nas"})
        await store.save(DEVICES_COLLECTION, {**created, "name": "nas-2"})
        deleted = await store.delete(DEVICES_COLLECTION, created["id"])

        assert created["id"]
        assert deleted == True
        assert events == [
            ("create", DEVICES_COLLECTION, created["id"]),
            ("update", DEVICES_COLLECTION, created["id"]),
            ("delete", DEVICES_COLLECTION, created["id"]),
        ]

    @pytest.mark.asyncio
    async def test_unsubscribed_hook_is_not_called(self, logger):
        store = InMemoryRecordStore(logger=logger)
        events = []

        async def hook(event):
            events.append(event.action)

        unsubscribe = store.subscribe(hook)
        await store.save(DEVICES_COLLECTION, {"name": "nas"})
        unsubscribe()
        unsubscribe()
        await store.save(DEVICES_COLLECTION, {"name": "pc"})

        assert events == ["create"]

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self, logger):
        store = InMemoryRecordStore(logger=logger)
        created = await store.save(DEVICES_COLLECTION, {"name": "nas"})

        created["name"] = "changed"

        assert (await store.find_by_id(DEVICES_COLLECTION, created["id"]))["name"] == "nas"

    @pytest.mark.asyncio
    async def test_delete_unknown(self, logger):
        store = InMemoryRecordStore(logger=logger)

        assert await store.delete(DEVICES_COLLECTION, "missing") == False
        assert await store.find_by_id(DEVICES_COLLECTION, "missing") is None


class TestHttpRecordStore:
    """Tests for the REST-backed store using httpx.MockTransport."""

    @pytest.mark.asyncio
    async def test_find_all_follows_pages(self, logger):
        def handler(request: httpx.Request) -> httpx.Response:
            page = int(request.url.params["page"])
            return httpx.Response(
                200, json={"page": page, "totalPages": 2, "items": [{"id": f"r{page}"}]}
            )

        client = httpx.AsyncClient(base_url="http://store", transport=httpx.MockTransport(handler))
        async with HttpRecordStore(client=client, logger=logger) as store:
            records = await store.find_all(DEVICES_COLLECTION)

        assert [record["id"] for record in records] == ["r1", "r2"]

    @pytest.mark.asyncio
    async def test_find_by_id_missing(self, logger):
        client = httpx.AsyncClient(
            base_url="http://store",
            transport=httpx.MockTransport(lambda request: httpx.Response(404, json={})),
        )
        store = HttpRecordStore(client=client, logger=logger)

        assert await store.find_by_id(DEVICES_COLLECTION, "nope") is None
        await store.aclose()

    @pytest.mark.asyncio
    async def test_save_patches_existing_record(self, logger):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            body = json.loads(request.content)
            return httpx.Response(200, json={"id": "d1", **body})

        client = httpx.AsyncClient(base_url="http://store", transport=httpx.MockTransport(handler))
        store = HttpRecordStore(client=client, logger=logger)
        events = []

        async def hook(event):
            events.append(event.action)

        store.subscribe(hook)
        saved = await store.save(DEVICES_COLLECTION, {"id": "d1", "status": "online"})

        assert requests[0].method == "PATCH"
        assert requests[0].url.path == "/api/collections/devices/records/d1"
        assert json.loads(requests[0].content) == {"status": "online"}
        assert saved["status"] == "online"
        assert events == ["update"]
        await store.aclose()

    @pytest.mark.asyncio
    async def test_server_error_raises(self, logger):
        client = httpx.AsyncClient(
            base_url="http://store",
            transport=httpx.MockTransport(lambda request: httpx.Response(500, text="boom")),
        )
        store = HttpRecordStore(client=client, logger=logger)

        with pytest.raises(httpx.HTTPStatusError):
            await store.find_all(DEVICES_COLLECTION)
        await store.aclose()

    @pytest.mark.asyncio
    async def test_closed_client_raises(self, logger):
        client = httpx.AsyncClient(
            base_url="http://store",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={})),
        )
        store = HttpRecordStore(client=client, logger=logger)
        await store.aclose()

        with pytest.raises(RuntimeError):
            store.client


class TestStoreDevicesAdapter:
    """Tests for device record mapping."""

    @pytest.mark.asyncio
    async def test_invalid_records_are_skipped(self, logger):
        store = InMemoryRecordStore(logger=logger)
        await store.save(DEVICES_COLLECTION, {"name": "ok", "mac": "AA:BB:CC:DD:EE:FF", "ip": "10.0.0.2"})
        await store.save(DEVICES_COLLECTION, {"name": "no address"})
        adapter = StoreDevicesAdapter(store=store, logger=logger)

        result = await adapter.get_devices()

        assert [device.name for device in result.value] == ["ok"]

    @pytest.mark.asyncio
    async def test_save_status_only_touches_status(self, logger):
        store = InMemoryRecordStore(logger=logger)
        created = await store.save(
            DEVICES_COLLECTION,
            {"name": "pc", "mac": "AA:BB:CC:DD:EE:FF", "ip": "10.0.0.2", "status": "offline", "link": "x"},
        )
        adapter = StoreDevicesAdapter(store=store, logger=logger)

        result = await adapter.save_status(created["id"], "online")

        stored = await store.find_by_id(DEVICES_COLLECTION, created["id"])
        assert result.value.status == "online"
        assert stored == {**created, "status": "online"}

    @pytest.mark.asyncio
    async def test_unknown_device(self, logger):
        adapter = StoreDevicesAdapter(store=InMemoryRecordStore(logger=logger), logger=logger)

        result = await adapter.get_device_by_id("missing")

        assert result.success == False
        assert result.error.code == DevicesErrorCodes.DEVICE_NOT_FOUND

    @pytest.mark.asyncio
    async def test_record_without_mac_is_reported(self, logger):
        store = InMemoryRecordStore(logger=logger)
        created = await store.save(DEVICES_COLLECTION, {"name": "pc", "ip": "10.0.0.2"})
        adapter = StoreDevicesAdapter(store=store, logger=logger)

        lookup = await adapter.get_device_by_id(created["id"])
        write = await adapter.save_status(created["id"], "online")

        assert lookup.success == False
        assert lookup.error.code == DevicesErrorCodes.INVALID_DEVICE_RAW_ENTITY
        assert write.success == False
        assert write.error.code == DevicesErrorCodes.INVALID_DEVICE_RAW_ENTITY

    @pytest.mark.asyncio
    async def test_record_without_ip_is_valid(self, logger):
        store = InMemoryRecordStore(logger=logger)
        created = await store.save(DEVICES_COLLECTION, {"name": "nas", "mac": "AA:BB:CC:DD:EE:FF"})
        adapter = StoreDevicesAdapter(store=store, logger=logger)

        result = await adapter.get_device_by_id(created["id"])

        assert result.success == True
        assert result.value.ip == ""

    def test_serializer_defaults(self):
        result = DeviceSerializer.from_raw(
            {"id": "1", "mac": "AA:BB:CC:DD:EE:FF", "ip": "10.0.0.2", "wol_port": "", "ssh_port": "2222"}
        )

        assert result.value.wol_port == 9
        assert result.value.ssh_port == 2222
        assert result.value.status == "offline"
        assert result.value.shutdown_cmd == "sudo shutdown -h now"
