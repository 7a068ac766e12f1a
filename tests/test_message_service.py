from unittest.mock import patch

import pytest

from sabores_bot.schemas.webhook import EvolutionWebhookEvent
from sabores_bot.services.evolution_service import EvolutionNetworkError, EvolutionResponseError
from sabores_bot.services.message_service import (
    IMAGE_PLACEHOLDER,
    InboundMessage,
    deliver_reply,
    extract_inbound_message,
    handle_webhook_event,
    process_inbound_message,
)
from sabores_bot.services.quote_service import QuoteStorageError
from sabores_bot.services.result import GATEWAY_ERROR, STORAGE_ERROR
from sabores_bot.services.state_machine import ConversationState

SENDER = "5511988887777@s.whatsapp.net"


def _event(message: dict, remote_jid: str = SENDER, **data) -> EvolutionWebhookEvent:
    return EvolutionWebhookEvent.model_validate(
        {
            "event": "messages.upsert",
            "instance": "sabores",
            "data": {"key": {"remoteJid": remote_jid, "fromMe": False, "id": "ABC"}, "message": message, **data},
        }
    )


class TestExtractInboundMessage:
    def test_plain_conversation(self):
        inbound = extract_inbound_message(_event({"conversation": "oi"}, pushName="Maria"))

        assert inbound == InboundMessage(sender=SENDER, text="oi", has_image=False, push_name="Maria")

    def test_extended_text(self):
        inbound = extract_inbound_message(_event({"extendedTextMessage": {"text": "1"}}))

        assert inbound.text == "1"
        assert inbound.has_image is False

    def test_image_with_caption(self):
        inbound = extract_inbound_message(_event({"imageMessage": {"caption": "bolo assim"}}))

        assert inbound.text == "bolo assim"
        assert inbound.has_image is True

    def test_image_without_caption(self):
        inbound = extract_inbound_message(_event({"imageMessage": {"url": "https://mmg.test/x"}}))

        assert inbound.text == IMAGE_PLACEHOLDER
        assert inbound.has_image is True

    @pytest.mark.parametrize(
        "message",
        [{"audioMessage": {"seconds": 3}}, {"stickerMessage": {}}, {}],
    )
    def test_unsupported_types_are_ignored(self, message):
        assert extract_inbound_message(_event(message)) is None

    def test_missing_data(self):
        assert extract_inbound_message(EvolutionWebhookEvent(event="connection.update")) is None

    def test_missing_message(self):
        event = EvolutionWebhookEvent.model_validate({"data": {"key": {"remoteJid": SENDER}}})
        assert extract_inbound_message(event) is None

    def test_missing_remote_jid(self):
        assert extract_inbound_message(_event({"conversation": "oi"}, remote_jid="")) is None


class TestDeliverReply:
    def test_success(self, gateway):
        result = deliver_reply(gateway, SENDER, "Olá", "Erro")

        assert result.ok is True
        gateway.send_text_message.assert_called_once_with(SENDER, "Olá")

    @patch("sabores_bot.services.message_service.alert_critical")
    def test_fallback_sent_when_reply_fails(self, mock_alert, gateway):
        gateway.send_text_message.side_effect = [EvolutionResponseError(500, "boom"), None]

        result = deliver_reply(gateway, SENDER, "Olá", "Erro temporário")

        assert result.ok is False
        assert result.error_code == GATEWAY_ERROR
        assert gateway.send_text_message.call_args_list[1][0] == (SENDER, "Erro temporário")
        mock_alert.assert_not_called()

    @patch("sabores_bot.services.message_service.alert_critical")
    def test_alert_when_fallback_fails_too(self, mock_alert, gateway):
        gateway.send_text_message.side_effect = EvolutionNetworkError("down")

        result = deliver_reply(gateway, SENDER, "Olá", "Erro temporário")

        assert result.ok is False
        assert result.error_code == GATEWAY_ERROR
        assert gateway.send_text_message.call_count == 2
        mock_alert.assert_called_once()


class TestProcessInboundMessage:
    def test_menu_reply(self, flow_router, quote_service, gateway, catalog):
        outcome = process_inbound_message(InboundMessage(SENDER, "oi"), flow_router, quote_service, gateway)

        assert outcome.quote is None
        assert outcome.delivery.ok is True
        gateway.send_text_message.assert_called_once_with(SENDER, catalog.get("menu").reply)

    def test_quote_is_saved_and_confirmed(self, flow_router, session_store, quote_service, gateway, catalog):
        session_store.set_state(SENDER, ConversationState.QUOTE_INTAKE)
        text = "Produto: bolo de chocolate, 1kg, retirada sábado"

        outcome = process_inbound_message(InboundMessage(SENDER, text), flow_router, quote_service, gateway)

        assert outcome.quote.ok is True
        saved = quote_service.list_quotes()
        assert len(saved) == 1
        assert outcome.quote.unwrap_or(None).id == saved[0].id
        assert saved[0].numero == SENDER
        assert saved[0].mensagem == text
        assert saved[0].tem_imagem is False
        gateway.send_text_message.assert_called_once_with(SENDER, catalog.quote_received)

    def test_image_quote_records_image_flag(self, flow_router, session_store, quote_service, gateway):
        session_store.set_state(SENDER, ConversationState.QUOTE_INTAKE)

        process_inbound_message(
            InboundMessage(SENDER, IMAGE_PLACEHOLDER, has_image=True), flow_router, quote_service, gateway
        )

        assert quote_service.list_quotes()[0].tem_imagem is True

    @patch("sabores_bot.services.message_service.alert_error")
    def test_storage_failure_still_replies(self, mock_alert, flow_router, session_store, quote_service, gateway, catalog):
        session_store.set_state(SENDER, ConversationState.QUOTE_INTAKE)

        with patch.object(quote_service, "add_quote", side_effect=QuoteStorageError("disk full")):
            outcome = process_inbound_message(
                InboundMessage(SENDER, "Produto: torta de limão"), flow_router, quote_service, gateway
            )

        assert outcome.quote.ok is False
        assert outcome.quote.error_code == STORAGE_ERROR
        assert outcome.quote.unwrap_or(None) is None
        mock_alert.assert_called_once()
        gateway.send_text_message.assert_called_once_with(SENDER, catalog.quote_received)


class TestHandleWebhookEvent:
    def test_processes_message(self, flow_router, quote_service, gateway):
        outcome = handle_webhook_event(_event({"conversation": "1"}), flow_router, quote_service, gateway)

        assert outcome.route.flow == "catalog"
        gateway.send_text_message.assert_called_once()

    def test_ignored_event(self, flow_router, quote_service, gateway):
        assert handle_webhook_event(_event({"audioMessage": {}}), flow_router, quote_service, gateway) is None
        gateway.send_text_message.assert_not_called()

    def test_unexpected_error_is_contained(self, flow_router, quote_service, gateway):
        with patch.object(flow_router, "route", side_effect=RuntimeError("bug")):
            assert handle_webhook_event(_event({"conversation": "oi"}), flow_router, quote_service, gateway) is None
