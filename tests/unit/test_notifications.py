"""Unit Tests - WhatsApp notifications."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from hangar.contracts.appointment import AppointmentStatus, Customer, Vehicle
from hangar.services.evolution import EvolutionAPIClient, normalize_whatsapp_number
from hangar.services.notifications import NotificationDispatcher


@pytest.fixture
def supabase(tenant_config) -> MagicMock:
    supabase = MagicMock()
    supabase.get_tenant_config = AsyncMock(return_value=tenant_config)
    supabase.get_customer = AsyncMock(
        return_value=Customer(id="cust-1", name="Ana", phone="11988887777")
    )
    supabase.get_vehicle = AsyncMock(
        return_value=Vehicle(id="veh-1", model="Civic", plate="ABC1D23")
    )
    supabase.save_dead_letter = AsyncMock()
    return supabase


@pytest.fixture
def evolution() -> MagicMock:
    client = MagicMock()
    client.send_text_message = AsyncMock(return_value={"key": {"id": "wamid"}})
    return client


class TestNotificationDispatcher:
    """Tests for NotificationDispatcher."""

    @pytest.mark.asyncio
    async def test_booking_created_sends_received_message(
        self, supabase, evolution, appointment_factory
    ) -> None:
        """Test the 'received' message goes to the customer phone."""
        dispatcher = NotificationDispatcher(supabase, evolution, enabled=True)

        task = dispatcher.booking_created(appointment_factory(), "CarbonCar")
        await dispatcher.drain()

        assert task is not None
        phone, text = evolution.send_text_message.await_args.args
        assert phone == "11988887777"
        assert "Recebemos seu agendamento" in text
        assert "*CarbonCar*" in text
        assert "23/12/2024" in text

    @pytest.mark.asyncio
    async def test_confirmed_message_includes_vehicle(
        self, supabase, evolution, appointment_factory
    ) -> None:
        """Test the confirmation carries model and plate."""
        dispatcher = NotificationDispatcher(supabase, evolution, enabled=True)
        appointment = appointment_factory(status=AppointmentStatus.CONFIRMADO)

        dispatcher.status_changed(appointment, "CarbonCar")
        await dispatcher.drain()

        text = evolution.send_text_message.await_args.args[1]
        assert "Civic (ABC1D23)" in text

    @pytest.mark.asyncio
    async def test_finished_fetches_tenant_name(
        self, supabase, evolution, appointment_factory
    ) -> None:
        """Test the Hangar name is loaded when not given."""
        dispatcher = NotificationDispatcher(supabase, evolution, enabled=True)

        dispatcher.status_changed(appointment_factory(status=AppointmentStatus.FINALIZADO))
        await dispatcher.drain()

        supabase.get_tenant_config.assert_awaited_once_with("tenant-1")
        text = evolution.send_text_message.await_args.args[1]
        assert "finalizado" in text

    @pytest.mark.asyncio
    async def test_status_without_template_is_silent(
        self, supabase, evolution, appointment_factory
    ) -> None:
        """Test EM_EXECUCAO sends nothing."""
        dispatcher = NotificationDispatcher(supabase, evolution, enabled=True)

        task = dispatcher.status_changed(
            appointment_factory(status=AppointmentStatus.EM_EXECUCAO), "CarbonCar"
        )

        assert task is None
        evolution.send_text_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_disabled_dispatcher_skips(
        self, supabase, evolution, appointment_factory
    ) -> None:
        """Test nothing is scheduled when notifications are off."""
        dispatcher = NotificationDispatcher(supabase, evolution, enabled=False)

        assert dispatcher.booking_created(appointment_factory(), "CarbonCar") is None
        await dispatcher.drain()

        evolution.send_text_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_customer_without_phone_skips(
        self, supabase, evolution, appointment_factory
    ) -> None:
        """Test customers without phone get no message and no DLQ entry."""
        supabase.get_customer.return_value = Customer(id="cust-1", name="Ana")
        dispatcher = NotificationDispatcher(supabase, evolution, enabled=True)

        dispatcher.booking_created(appointment_factory(), "CarbonCar")
        await dispatcher.drain()

        evolution.send_text_message.assert_not_awaited()
        supabase.save_dead_letter.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_send_failure_goes_to_dlq(
        self, supabase, evolution, appointment_factory
    ) -> None:
        """Test a failed send is parked in the DLQ and never raised."""
        evolution.send_text_message.side_effect = httpx.ConnectError("down")
        dispatcher = NotificationDispatcher(supabase, evolution, enabled=True)

        dispatcher.booking_created(appointment_factory(), "CarbonCar")
        await dispatcher.drain()

        supabase.save_dead_letter.assert_awaited_once()
        entry = supabase.save_dead_letter.await_args.args[0]
        assert entry["reference_id"] == "appt-1"
        assert entry["error_type"] == "notification_error"
        assert entry["payload"]["template"] == "booking_received"

    @pytest.mark.asyncio
    async def test_dlq_failure_is_swallowed(
        self, supabase, evolution, appointment_factory
    ) -> None:
        """Test a broken DLQ does not crash the background task."""
        evolution.send_text_message.side_effect = httpx.ConnectError("down")
        supabase.save_dead_letter.side_effect = RuntimeError("db down")
        dispatcher = NotificationDispatcher(supabase, evolution, enabled=True)

        task = dispatcher.booking_created(appointment_factory(), "CarbonCar")
        await dispatcher.drain()

        assert task.done()
        assert task.exception() is None


class TestEvolutionClient:
    """Tests for the Evolution API client."""

    def test_normalize_number(self) -> None:
        """Test numbers keep digits and Brazilian ones get the 55 prefix."""
        assert normalize_whatsapp_number("(11) 98888-7777") == "5511988887777"
        assert normalize_whatsapp_number("+55 11 98888-7777") == "5511988887777"

    @pytest.mark.asyncio
    async def test_send_text_message_payload(self) -> None:
        """Test the request goes to the instance endpoint with a clean number."""
        client = EvolutionAPIClient(
            base_url="http://evolution", api_key="key", instance_name="hangar", max_retries=0
        )
        response = MagicMock()
        response.json.return_value = {"key": {"id": "wamid"}}
        http = MagicMock()
        http.post = AsyncMock(return_value=response)

        with patch.object(client, "_get_client", AsyncMock(return_value=http)):
            result = await client.send_text_message("(11) 98888-7777", "Olá")

        assert result == {"key": {"id": "wamid"}}
        http.post.assert_awaited_once_with(
            "/message/sendText/hangar",
            json={"number": "5511988887777", "text": "Olá"},
        )

    @pytest.mark.asyncio
    async def test_retries_server_errors(self) -> None:
        """Test a 5xx is retried and the next attempt succeeds."""
        client = EvolutionAPIClient(api_key="key", max_retries=2, retry_delay=0)
        failed = httpx.Response(503, request=httpx.Request("POST", "http://evolution"))
        ok = MagicMock()
        ok.json.return_value = {"key": {"id": "wamid"}}
        http = MagicMock()
        http.post = AsyncMock(side_effect=[failed, ok])

        with patch.object(client, "_get_client", AsyncMock(return_value=http)):
            result = await client.send_text_message("11988887777", "Olá")

        assert result["key"]["id"] == "wamid"
        assert http.post.await_count == 2

    @pytest.mark.asyncio
    async def test_client_errors_not_retried(self) -> None:
        """Test a 4xx fails at once."""
        client = EvolutionAPIClient(api_key="key", max_retries=2, retry_delay=0)
        rejected = httpx.Response(400, request=httpx.Request("POST", "http://evolution"))
        http = MagicMock()
        http.post = AsyncMock(return_value=rejected)

        with patch.object(client, "_get_client", AsyncMock(return_value=http)):
            with pytest.raises(httpx.HTTPStatusError):
                await client.send_text_message("11988887777", "Olá")

        assert http.post.await_count == 1

    @pytest.mark.asyncio
    async def test_gives_up_after_retries(self) -> None:
        """Test transport errors stop after max_retries + 1 attempts."""
        client = EvolutionAPIClient(api_key="key", max_retries=1, retry_delay=0)
        http = MagicMock()
        http.post = AsyncMock(side_effect=httpx.ConnectError("down"))

        with patch.object(client, "_get_client", AsyncMock(return_value=http)):
            with pytest.raises(httpx.ConnectError):
                await client.send_text_message("11988887777", "Olá")

        assert http.post.await_count == 2

    @pytest.mark.asyncio
    async def test_unconfigured_client_skips_dispatch(
        self, supabase, appointment_factory
    ) -> None:
        """Test no message and no DLQ entry without an API key."""
        evolution = EvolutionAPIClient(api_key="")
        evolution.api_key = ""
        dispatcher = NotificationDispatcher(supabase, evolution, enabled=True)

        dispatcher.booking_created(appointment_factory(), "CarbonCar")
        await dispatcher.drain()

        supabase.get_customer.assert_not_awaited()
        supabase.save_dead_letter.assert_not_awaited()
