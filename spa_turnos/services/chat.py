"""
FAQ Chat

Scripted assistant answering the spa's frequent questions. There is no
language model behind it: user input is matched against a fixed list of
quick replies.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from spa_turnos.models.schemas import User

FALLBACK_ANSWER = "Disculpame, todavía no aprendí a responder eso 🙈"

WHATSAPP_URL = "https://wa.me/5491198765432?text=Hola%20SPA%20Sentirse%20Bien,%20necesito%20ayuda"
MAPS_URL = "https://www.google.com/maps/search/?api=1&query=Av.+Siempre+Viva+742+Buenos+Aires"


@dataclass(frozen=True)
class ChatLink:
    label: str
    url: str


@dataclass(frozen=True)
class ChatAnswer:
    text: str
    links: List[ChatLink] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "text": self.text,
            "links": [{"label": link.label, "url": link.url} for link in self.links],
        }

    def render(self) -> str:
        """Plain-text rendering (used by the Telegram bot)."""
        lines = [self.text]
        lines.extend(f"🔗 {link.label}: {link.url}" for link in self.links)
        return "\n".join(lines)


QUICK_REPLIES = [
    "📅 ¿Cómo reservo un turno?",
    "💆‍♀️ ¿Qué servicios ofrecen?",
    "📍 ¿Dónde están ubicados?",
    "💳 ¿Cuáles son los medios de pago?",
    "🙋 Quiero hablar con un humano",
]

BOT_RESPONSES: Dict[str, ChatAnswer] = {
    QUICK_REPLIES[0]: ChatAnswer(
        "Para reservar un turno, dirigite a la sección \"Servicios\", elegí el "
        "tratamiento que más te guste y seguí los pasos para seleccionar fecha y "
        "horario. ¡En pocos clics queda confirmado!",
        [ChatLink("Ver servicios", "/servicios")],
    ),
    QUICK_REPLIES[1]: ChatAnswer(
        "Ofrecemos masajes descontracturantes, relajantes, tratamientos faciales, "
        "manicura, pedicura y mucho más.",
        [ChatLink("Catálogo completo", "/servicios")],
    ),
    QUICK_REPLIES[2]: ChatAnswer(
        "Nos encontramos en Av. Siempre Viva 742, Buenos Aires.",
        [ChatLink("Abrir en Maps", MAPS_URL)],
    ),
    QUICK_REPLIES[3]: ChatAnswer(
        "Aceptamos:\n• Efectivo\n• Tarjetas de débito/crédito\n"
        "• Transferencia bancaria\n• MercadoPago",
    ),
    QUICK_REPLIES[4]: ChatAnswer(
        "¡Claro! Podés contactarnos a través de cualquiera de estos medios:",
        [ChatLink("WhatsApp", WHATSAPP_URL)],
    ),
}


def greeting(user: Optional[User] = None) -> str:
    name = f" {user.first_name}" if user and user.first_name else ""
    return f"¡Hola{name}! Soy tu asistente virtual. ¿En qué puedo ayudarte hoy?"


def filter_replies(text: str) -> List[str]:
    """Quick replies containing ``text`` (case-insensitive); all of them for blank input."""
    needle = text.strip().lower()
    if not needle:
        return list(QUICK_REPLIES)
    return [reply for reply in QUICK_REPLIES if needle in reply.lower()]


def match_reply(text: str) -> Optional[str]:
    if text in BOT_RESPONSES:
        return text
    if not text.strip():
        return None
    matches = filter_replies(text)
    return matches[0] if matches else None


def answer(text: str) -> ChatAnswer:
    """Answer a quick reply or free text; unknown questions get the fallback."""
    reply = match_reply(text)
    if reply is None:
        return ChatAnswer(FALLBACK_ANSWER)
    return BOT_RESPONSES[reply]
