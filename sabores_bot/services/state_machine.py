from enum import Enum
from typing import Optional


class ConversationState(str, Enum):
    NONE = "none"  # Menu principal / conversa reiniciada
    CATALOG = "catalogo"
    QUOTE_INTAKE = "orcamento"  # Aguardando os dados do orçamento
    HUMAN_HANDOFF = "atendente"  # Cliente falando com a equipe
    TESTIMONIALS = "depoimentos"
    PHOTOS = "fotos"


def parse_state(value: Optional[str]) -> Optional[ConversationState]:
    """Parse a stored state value; unknown or empty values mean no session."""
    if not value:
        return None
    try:
        return ConversationState(value)
    except ValueError:
        return None
