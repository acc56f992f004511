from decimal import Decimal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


# The dashboard sends camelCase keys (studentId, seatNo, ...)
class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

# Largest value a Numeric(10, 2) money column holds
MAX_AMOUNT = Decimal("99999999.99")
