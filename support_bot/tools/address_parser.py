"""
Splits a geocoder-formatted address into the components the Shopify
``orderUpdate`` mutation expects.

The split is delegated to the language model; the province name it
returns is mapped to the Spanish sub-division code Shopify stores.
"""

import logging
import unicodedata
from typing import Optional

from pydantic import ValidationError

from support_bot.config import settings
from support_bot.prompts.system_prompts import ADDRESS_PARSER_PROMPT
from support_bot.schemas.commerce_schema import AddressComponents
from support_bot.tools.errors import CommerceError, ToolError
from support_bot.tools.llm import LLMClient
from support_bot.utils import parse_json_object

logger = logging.getLogger(__name__)

PROVINCE_CODES: dict[str, str] = {
    "A Coruña": "C", "La Coruña": "C",
    "Álava": "VI", "Araba": "VI",
    "Albacete": "AB",
    "Alicante": "A", "Alacant": "A",
    "Almería": "AL",
    "Asturias": "O",
    "Ávila": "AV",
    "Badajoz": "BA",
    "Illes Balears": "PM", "Islas Baleares": "PM", "Balears": "PM",
    "Barcelona": "B",
    "Burgos": "BU",
    "Cáceres": "CC",
    "Cádiz": "CA",
    "Cantabria": "S",
    "Castellón": "CS", "Castelló": "CS",
    "Ceuta": "CE",
    "Ciudad Real": "CR",
    "Córdoba": "CO",
    "Cuenca": "CU",
    "Gipuzkoa": "SS", "Guipúzcoa": "SS",
    "Girona": "GI", "Gerona": "GI",
    "Granada": "GR",
    "Guadalajara": "GU",
    "Huelva": "H",
    "Huesca": "HU",
    "Jaén": "J",
    "La Rioja": "LO",
    "Las Palmas": "GC",
    "León": "LE",
    "Lleida": "L", "Lérida": "L",
    "Lugo": "LU",
    "Madrid": "M",
    "Málaga": "MA",
    "Melilla": "ML",
    "Murcia": "MU",
    "Navarra": "NA", "Nafarroa": "NA",
    "Ourense": "OR", "Orense": "OR",
    "Palencia": "P",
    "Pontevedra": "PO",
    "Salamanca": "SA",
    "Santa Cruz de Tenerife": "TF",
    "Segovia": "SG",
    "Sevilla": "SE",
    "Soria": "SO",
    "Tarragona": "T",
    "Teruel": "TE",
    "Toledo": "TO",
    "Valencia": "V", "València": "V",
    "Valladolid": "VA",
    "Bizkaia": "BI", "Vizcaya": "BI",
    "Zamora": "ZA",
    "Zaragoza": "Z",
}


def _fold(value: str) -> str:
    """Lowercase and strip accents so 'Malaga' matches 'Málaga'."""
    decomposed = unicodedata.normalize("NFKD", value.strip().lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


_FOLDED_CODES = {_fold(name): code for name, code in PROVINCE_CODES.items()}


def province_code(province: str) -> str:
    """Return the sub-division code for a province name, or ""."""
    if not province:
        return ""
    return _FOLDED_CODES.get(_fold(province), "")


class AddressParser:
    """LLM-backed address splitter."""

    def __init__(self, llm: LLMClient) -> None:
        self.llm = llm

    def parse(self, formatted_address: str) -> AddressComponents:
        """Split a single-line address into components.

        Raises:
            CommerceError: When the model output cannot be used.
        """
        try:
            raw = self.llm.complete(
                [
                    {"role": "system", "content": ADDRESS_PARSER_PROMPT},
                    {"role": "user", "content": formatted_address},
                ],
                temperature=settings.model.classification_temperature,
            )
        except ToolError as exc:
            raise CommerceError(f"Address parsing failed: {exc}") from exc

        data: Optional[dict] = parse_json_object(raw)
        if data is None:
            raise CommerceError("Address parsing returned no JSON object")

        cleaned = {k: str(v).strip() for k, v in data.items() if v is not None}
        try:
            components = AddressComponents(**cleaned)
        except ValidationError as exc:
            raise CommerceError(f"Address parsing returned incomplete components: {exc}") from exc
        if not components.address1 or not components.city:
            raise CommerceError("Address parsing returned an empty street or city")

        components.province_code = province_code(components.province)
        logger.debug("Parsed address components: %s", components.model_dump())
        return components
