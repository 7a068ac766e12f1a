from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class QuoteStatus(str, Enum):
    NEW = "novo"
    IN_PROGRESS = "em_andamento"
    DONE = "concluido"


class QuoteRequest(BaseModel):
    """One stored quote request; field aliases match the JSON file layout."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    numero: str
    mensagem: str
    timestamp: str
    status: QuoteStatus = QuoteStatus.NEW
    tem_imagem: bool = Field(default=False, alias="temImagem")
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class QuoteStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total: int = 0
    novos: int = 0
    em_andamento: int = Field(default=0, alias="emAndamento")
    concluidos: int = 0
    com_imagem: int = Field(default=0, alias="comImagem")


class QuoteStatusUpdate(BaseModel):
    status: QuoteStatus


class QuoteStatusUpdateResponse(BaseModel):
    success: bool
    id: int
    status: QuoteStatus
