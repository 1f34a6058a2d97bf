#
# Tests for open enumerations and their JSON codec
#

from typing import Optional
from unittest import TestCase

from pydantic import BaseModel

from cloudflare_client.enums import (
    AccessRuleMode,
    DnsRecordType,
    ExtensibleEnum,
    ExtensibleEnumCodec,
    R2StorageClass,
    ZoneType,
)


class PermissionScope(ExtensibleEnum):
    READ_ONLY = 'read-only'
    READ_WRITE = 'read-write'


class Rule(BaseModel):
    mode: AccessRuleMode
    storage: Optional[R2StorageClass] = None


class TestExtensibleEnum(TestCase):
    def test_constants_are_instances(self):
        self.assertIsInstance(ZoneType.FULL, ZoneType)
        self.assertEqual('full', ZoneType.FULL.value)
        self.assertEqual('full', str(ZoneType.FULL))
        self.assertEqual("ZoneType('full')", repr(ZoneType.FULL))

    def test_constant_equals_value_from_same_string(self):
        self.assertEqual(
            PermissionScope.READ_ONLY, PermissionScope('read-only')
        )
        self.assertNotEqual(
            PermissionScope.READ_ONLY, PermissionScope('read-write')
        )

    def test_case_insensitive_type(self):
        self.assertEqual(AccessRuleMode.BLOCK, AccessRuleMode('BLOCK'))
        self.assertEqual(
            hash(AccessRuleMode.BLOCK), hash(AccessRuleMode('Block'))
        )
        self.assertEqual(DnsRecordType.AAAA, DnsRecordType('aaaa'))
        self.assertIn(AccessRuleMode('Whitelist'), {AccessRuleMode.WHITELIST})

    def test_ordinal_type(self):
        self.assertEqual(R2StorageClass.STANDARD, R2StorageClass('Standard'))
        self.assertNotEqual(R2StorageClass.STANDARD, R2StorageClass('standard'))
        self.assertFalse(R2StorageClass('standard').is_known)

    def test_unknown_values_construct(self):
        value = ZoneType('enterprise_plus')
        self.assertFalse(value.is_known)
        self.assertEqual('enterprise_plus', value.value)
        self.assertTrue(ZoneType('FULL').is_known)

    def test_different_types_never_equal(self):
        self.assertNotEqual(ZoneType('full'), AccessRuleMode('full'))
        self.assertNotEqual(ZoneType.FULL, 'full')

    def test_registry_is_per_type(self):
        self.assertEqual(
            {'full', 'partial', 'secondary'},
            {v.value for v in ZoneType.known_values()},
        )
        self.assertEqual(2, len(PermissionScope.known_values()))

    def test_rejects_non_strings(self):
        with self.assertRaises(TypeError):
            ZoneType(None)
        with self.assertRaises(TypeError):
            ZoneType(3)


class TestExtensibleEnumCodec(TestCase):
    def test_encode_writes_raw_string(self):
        codec = ExtensibleEnumCodec(AccessRuleMode)
        self.assertEqual(
            '"js_challenge"', codec.encode(AccessRuleMode.JS_CHALLENGE)
        )

    def test_round_trip_preserves_unknown_bytes(self):
        codec = ExtensibleEnumCodec(AccessRuleMode)
        for raw in ('block', 'BLOCK', 'Brand New Mode', 'ünïcødé', ''):
            value = AccessRuleMode(raw)
            decoded = codec.decode(codec.encode(value))
            self.assertEqual(value, decoded)
            self.assertEqual(raw, decoded.value)

    def test_decode_bytes(self):
        codec = ExtensibleEnumCodec(ZoneType)
        self.assertEqual(ZoneType.PARTIAL, codec.decode(b'"partial"'))

    def test_model_fields(self):
        rule = Rule.model_validate_json(
            '{"mode": "quarantine", "storage": "InfrequentAccess"}'
        )
        self.assertEqual(AccessRuleMode('quarantine'), rule.mode)
        self.assertEqual(R2StorageClass.INFREQUENT_ACCESS, rule.storage)
        self.assertEqual(
            '{"mode":"quarantine","storage":"InfrequentAccess"}',
            rule.model_dump_json(),
        )
        self.assertEqual(
            {'mode': 'quarantine', 'storage': None},
            Rule(mode=AccessRuleMode('quarantine')).model_dump(mode='json'),
        )

    def test_model_accepts_instances_and_strings(self):
        self.assertEqual(
            AccessRuleMode.BLOCK, Rule(mode=AccessRuleMode.BLOCK).mode
        )
        self.assertEqual(AccessRuleMode.BLOCK, Rule(mode='block').mode)
