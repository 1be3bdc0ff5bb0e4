from decimal import Decimal, ROUND_HALF_EVEN

from sqlalchemy import BigInteger, Numeric
from sqlalchemy.types import TypeDecorator


class ExactNumeric(TypeDecorator):
    """
    Fixed-point decimal column.

    Backends with a real NUMERIC type store the value natively. SQLite would
    store it as a binary float, so there the value is kept as an integer count
    of the smallest unit (``10 ** -scale``) and turned back into a ``Decimal``
    on read. Comparisons and arithmetic in SQL stay exact on both.

    Values are rounded half-even to ``scale`` places before they are stored.
    """

    impl = Numeric
    cache_ok = True

    def __init__(self, precision: int, scale: int):
        super().__init__(precision, scale)
        self.precision = precision
        self.scale = scale

    @property
    def quantum(self) -> Decimal:
        return Decimal(1).scaleb(-self.scale)

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(BigInteger())
        return dialect.type_descriptor(Numeric(self.precision, self.scale, asdecimal=True))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = Decimal(str(value)).quantize(self.quantum, rounding=ROUND_HALF_EVEN)
        if dialect.name == "sqlite":
            return int(value.scaleb(self.scale))
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if dialect.name == "sqlite":
            return Decimal(int(value)).scaleb(-self.scale)
        return value
