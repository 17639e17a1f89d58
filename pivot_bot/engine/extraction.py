"""
Contract between the engine and an AI extraction service.

The engine hands the service an instruction, a target schema and the raw reply.
A service answers with `ExtractedValue` or a typed `NoConfidentExtraction`; it
never signals failure by raising or by returning None.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Type, Union

from pydantic import BaseModel

from ..schemas import domain

NOT_CONFIDENT = "not_confident"
INVALID_OUTPUT = "invalid_output"
UNAVAILABLE = "unavailable"

# Target schemas that states may name in ai_validation
EXTRACTION_SCHEMAS: Dict[str, Type[BaseModel]] = {
    "SupplierCategories": domain.SupplierCategories,
    "SupplierContact": domain.SupplierContact,
    "SupplierReminders": domain.SupplierReminders,
    "ProductList": domain.ProductList,
    "ProductPars": domain.ProductPars,
}


@dataclass(frozen=True)
class ExtractedValue:
    data: Any


@dataclass(frozen=True)
class NoConfidentExtraction:
    reason: str = NOT_CONFIDENT
    detail: str = ""


ExtractionResult = Union[ExtractedValue, NoConfidentExtraction]


class BaseExtractor(ABC):
    name: str = "base"

    @abstractmethod
    def extract(
        self,
        instruction: str,
        schema: Type[BaseModel],
        raw_input: str,
        context: Dict[str, Any],
    ) -> ExtractionResult:
        """Return data shaped like `schema`, or say why nothing confident was found."""
        ...
