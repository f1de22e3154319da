"""
Tests for the Telegram FAQ bot helpers and webhook endpoint.
"""

from fastapi.testclient import TestClient

from conftest import make_service

from spa_turnos.bot.handlers import format_catalog, quick_reply_keyboard
from spa_turnos.main import app
from spa_turnos.services import chat
from spa_turnos.services.catalog import group_by_category


class TestHandlers:
    def test_keyboard_has_every_quick_reply(self):
        keyboard = quick_reply_keyboard()
        labels = [row[0].text for row in keyboard.keyboard]
        assert labels == chat.QUICK_REPLIES

    def test_format_catalog(self):
        categories = group_by_category([
            make_service("s1", 100, tipo="Masajes"),
            make_service("s2", 80, tipo=""),
        ])
        text = format_catalog(categories)
        assert "Masajes" in text
        assert "Otros" in text
        assert "Servicio s2: $80" in text

    def test_empty_catalog(self):
        assert "no hay servicios" in format_catalog({})


class TestWebhook:
    def test_unconfigured_bot(self, monkeypatch):
        monkeypatch.setattr("spa_turnos.bot.webhook.bot", None)
        monkeypatch.setattr("spa_turnos.config.settings.telegram_bot_token", "")
        monkeypatch.setattr("spa_turnos.config.settings.webhook_secret_token", None)

        response = TestClient(app).post("/telegram/webhook", json={"update_id": 1})
        assert response.status_code == 503
