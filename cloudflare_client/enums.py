#
#
#

"""Open ("extensible") enumerations.

Cloudflare adds new string values to enum-like fields without notice. A
closed ``enum.Enum`` would make every such addition a parse failure, so
these types wrap the raw string instead and expose the documented values
as named constants:

    class ZoneType(ExtensibleEnum):
        case_sensitive = False

        FULL = 'full'
        PARTIAL = 'partial'

    ZoneType.FULL == ZoneType('Full')      # True, case-insensitive type
    ZoneType('brand_new').is_known         # False, but still valid

Upper-case string attributes declared in the class body are turned into
instances of the class and recorded in a per-type registry.
"""

from typing import Any, Dict, Generic, Type, TypeVar

from pydantic import TypeAdapter
from pydantic_core import core_schema

E = TypeVar('E', bound='ExtensibleEnum')


class ExtensibleEnum:
    __slots__ = ('_value',)

    # Equality rule for the whole type, declared once per subclass
    case_sensitive = True

    _known: Dict[str, 'ExtensibleEnum'] = {}

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        cls._known = {}
        for name, value in list(vars(cls).items()):
            if name.isupper() and isinstance(value, str):
                constant = cls(value)
                setattr(cls, name, constant)
                cls._known[constant._key()] = constant

    def __init__(self, value: str):
        if not isinstance(value, str):
            raise TypeError(
                f'{type(self).__name__} expects a str, got '
                f'{type(value).__name__}'
            )
        self._value = value

    @property
    def value(self) -> str:
        return self._value

    @property
    def is_known(self) -> bool:
        return self._key() in type(self)._known

    @classmethod
    def known_values(cls):
        return tuple(cls._known.values())

    def _key(self) -> str:
        if self.case_sensitive:
            return self._value
        return self._value.casefold()

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self):
        return hash((type(self), self._key()))

    def __str__(self):
        return self._value

    def __repr__(self):
        return f'{type(self).__name__}({self._value!r})'

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type, handler):
        from_str = core_schema.no_info_after_validator_function(
            cls, core_schema.str_schema()
        )
        return core_schema.json_or_python_schema(
            json_schema=from_str,
            python_schema=core_schema.union_schema(
                [core_schema.is_instance_schema(cls), from_str]
            ),
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda v: v.value
            ),
        )


class ExtensibleEnumCodec(Generic[E]):
    """JSON codec for a single extensible enum type.

    Encoding always writes the raw string and decoding always wraps whatever
    string is present, so values the client does not know about survive a
    round trip byte for byte.
    """

    def __init__(self, enum_type: Type[E]):
        self.enum_type = enum_type
        self._adapter = TypeAdapter(enum_type)

    def encode(self, value: E) -> str:
        return self._adapter.dump_json(value).decode('utf-8')

    def decode(self, raw: Any) -> E:
        if isinstance(raw, bytes):
            raw = raw.decode('utf-8')
        return self._adapter.validate_json(raw)


class ZoneType(ExtensibleEnum):
    case_sensitive = False

    FULL = 'full'
    PARTIAL = 'partial'
    SECONDARY = 'secondary'


class ZoneStatus(ExtensibleEnum):
    case_sensitive = False

    ACTIVE = 'active'
    PENDING = 'pending'
    INITIALIZING = 'initializing'
    MOVED = 'moved'
    DELETED = 'deleted'
    DEACTIVATED = 'deactivated'


class DnsRecordType(ExtensibleEnum):
    case_sensitive = False

    A = 'A'
    AAAA = 'AAAA'
    CAA = 'CAA'
    CNAME = 'CNAME'
    DS = 'DS'
    HTTPS = 'HTTPS'
    MX = 'MX'
    NS = 'NS'
    PTR = 'PTR'
    SOA = 'SOA'
    SRV = 'SRV'
    SVCB = 'SVCB'
    TLSA = 'TLSA'
    TXT = 'TXT'


class AccessRuleMode(ExtensibleEnum):
    case_sensitive = False

    BLOCK = 'block'
    CHALLENGE = 'challenge'
    JS_CHALLENGE = 'js_challenge'
    MANAGED_CHALLENGE = 'managed_challenge'
    WHITELIST = 'whitelist'


class R2StorageClass(ExtensibleEnum):
    # R2 treats storage class names as exact identifiers
    case_sensitive = True

    STANDARD = 'Standard'
    INFREQUENT_ACCESS = 'InfrequentAccess'


class TokenStatus(ExtensibleEnum):
    case_sensitive = False

    ACTIVE = 'active'
    DISABLED = 'disabled'
    EXPIRED = 'expired'
