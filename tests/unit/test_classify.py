"""Tests for shape classification."""

from __future__ import annotations

import collections
import datetime
import decimal
import enum
import unittest
import uuid
from dataclasses import dataclass, field
from typing import (
    Any,
    ClassVar,
    Deque,
    Dict,
    FrozenSet,
    Generic,
    List,
    Mapping,
    Optional,
    Sequence,
    Set,
    Tuple,
    TypeVar,
    Union,
)

from snapdiff.core.classify import classify_shape, is_record_type
from snapdiff.core.errors import ShapeConfigurationError
from snapdiff.core.types import DiffPolicy, FieldCategory

T = TypeVar("T")


class Level(enum.Enum):
    LOW = 1
    HIGH = 2


@dataclass
class Inner:
    x: int = 0


@dataclass
class Everything:
    count: int
    ratio: float
    flag: bool
    name: str
    raw: bytes
    price: decimal.Decimal
    when: datetime.datetime
    day: datetime.date
    level: Level
    ident: uuid.UUID
    maybe: Optional[int]
    union_none: int | None
    anything: Any
    inner: Inner
    maybe_inner: Optional[Inner]
    items: List[Inner]
    numbers: Sequence[int]
    pair: Tuple[int, int]
    many: Tuple[str, ...]
    tags: Set[str]
    frozen: FrozenSet[str]
    queue: Deque[int]
    mapping: Dict[str, int]
    readonly_map: Mapping[str, Inner]
    ordered: collections.OrderedDict[str, int]


@dataclass
class Ordered:
    z: int
    nested: Inner
    a: str
    tags: List[str] = field(default_factory=list)


class PlainRecord:
    count: int
    label: str = "none"
    kind: ClassVar[str] = "plain"

    @property
    def doubled(self) -> int:
        return self.count * 2

    @property
    def untyped(self):
        return None


class PlainChild(PlainRecord):
    extra: float


@dataclass
class WithPrivate:
    visible: int = 0
    _hidden: int = 0


@dataclass
class Box(Generic[T]):
    content: T
    contents: List[T] = field(default_factory=list)


@dataclass
class UsesBox:
    box: Box[Inner]


@dataclass
class AmbiguousUnion:
    value: Union[int, str]


@dataclass
class BareList:
    values: list


@dataclass
class AnyList:
    values: List[Any]


@dataclass
class MixedTuple:
    values: Tuple[int, str]


@dataclass
class DanglingRef:
    other: DoesNotExist  # noqa: F821


def _categories(shape, policy=None):
    return {f.name: f.category for f in classify_shape(shape, policy)}


class TestCategories(unittest.TestCase):
    def setUp(self):
        self.fields = {f.name: f for f in classify_shape(Everything)}

    def test_scalars(self):
        for name in (
            "count",
            "ratio",
            "flag",
            "name",
            "raw",
            "price",
            "when",
            "day",
            "level",
            "ident",
            "maybe",
            "union_none",
            "anything",
        ):
            self.assertEqual(self.fields[name].category, FieldCategory.SCALAR, name)

    def test_nested(self):
        self.assertEqual(self.fields["inner"].category, FieldCategory.NESTED)
        self.assertEqual(self.fields["maybe_inner"].category, FieldCategory.NESTED)
        self.assertIs(self.fields["maybe_inner"].value_type, Inner)

    def test_list_like(self):
        for name in ("items", "numbers", "pair", "many", "tags", "frozen", "queue"):
            self.assertEqual(self.fields[name].category, FieldCategory.LIST_LIKE, name)

    def test_map_like_takes_precedence(self):
        for name in ("mapping", "readonly_map", "ordered"):
            self.assertEqual(self.fields[name].category, FieldCategory.MAP_LIKE, name)

    def test_optional_unwrapped_and_nullable(self):
        self.assertTrue(self.fields["maybe"].nullable)
        self.assertIs(self.fields["maybe"].value_type, int)
        self.assertTrue(self.fields["union_none"].nullable)
        self.assertFalse(self.fields["count"].nullable)

    def test_element_descriptors(self):
        items = self.fields["items"]
        self.assertEqual(items.element.category, FieldCategory.NESTED)
        self.assertIs(items.element.value_type, Inner)
        self.assertEqual(self.fields["numbers"].element.category, FieldCategory.SCALAR)
        self.assertIs(self.fields["many"].element.value_type, str)
        self.assertIs(self.fields["pair"].element.value_type, int)

    def test_containers(self):
        self.assertIs(self.fields["items"].container, list)
        self.assertIs(self.fields["numbers"].container, list)
        self.assertIs(self.fields["pair"].container, tuple)
        self.assertIs(self.fields["tags"].container, set)
        self.assertIs(self.fields["frozen"].container, frozenset)
        self.assertIs(self.fields["queue"].container, collections.deque)


class TestFieldDiscovery(unittest.TestCase):
    def test_declaration_order(self):
        names = [f.name for f in classify_shape(Ordered)]
        self.assertEqual(names, ["z", "nested", "a", "tags"])

    def test_dataclass_defaults(self):
        fields = {f.name: f for f in classify_shape(Ordered)}
        self.assertIsNone(fields["z"].read(None))
        self.assertEqual(fields["tags"].read(None), [])

    def test_plain_class_fields_and_properties(self):
        fields = {f.name: f for f in classify_shape(PlainRecord)}
        self.assertEqual(list(fields), ["count", "label", "doubled"])
        self.assertEqual(fields["label"].read(None), "none")
        record = PlainRecord()
        record.count = 4
        self.assertEqual(fields["doubled"].read(record), 8)

    def test_inherited_annotations_come_first(self):
        names = [f.name for f in classify_shape(PlainChild)]
        self.assertEqual(names, ["count", "label", "extra", "doubled"])

    def test_properties_can_be_disabled(self):
        names = [f.name for f in classify_shape(PlainRecord, DiffPolicy.fields_only())]
        self.assertEqual(names, ["count", "label"])

    def test_private_fields_excluded_by_default(self):
        self.assertEqual(list(_categories(WithPrivate)), ["visible"])
        policy = DiffPolicy(include_private=True)
        self.assertEqual(list(_categories(WithPrivate, policy)), ["visible", "_hidden"])

    def test_generic_shape_binds_type_variables(self):
        fields = {f.name: f for f in classify_shape(Box[Inner])}
        self.assertEqual(fields["content"].category, FieldCategory.NESTED)
        self.assertIs(fields["contents"].element.value_type, Inner)

    def test_generic_field_of_another_shape(self):
        fields = {f.name: f for f in classify_shape(UsesBox)}
        self.assertEqual(fields["box"].category, FieldCategory.NESTED)
        self.assertEqual(fields["box"].value_type, Box[Inner])

    def test_record_type_detection(self):
        self.assertTrue(is_record_type(Inner))
        self.assertTrue(is_record_type(PlainRecord))
        self.assertTrue(is_record_type(Box[int]))
        self.assertFalse(is_record_type(int))
        self.assertFalse(is_record_type(Level))
        self.assertFalse(is_record_type(datetime.datetime))


class TestClassificationFailures(unittest.TestCase):
    def assertFails(self, shape, field_name=None):
        with self.assertRaises(ShapeConfigurationError) as ctx:
            classify_shape(shape)
        self.assertEqual(ctx.exception.field, field_name)
        return ctx.exception

    def test_ambiguous_union(self):
        err = self.assertFails(AmbiguousUnion, "value")
        self.assertIn("ambiguous union", str(err))

    def test_bare_list_has_no_element_type(self):
        self.assertFails(BareList, "values")

    def test_any_element_type(self):
        self.assertFails(AnyList, "values")

    def test_heterogeneous_tuple(self):
        self.assertFails(MixedTuple, "values")

    def test_unresolved_type_variable(self):
        self.assertFails(Box, "content")

    def test_unresolvable_forward_reference(self):
        err = self.assertFails(DanglingRef)
        self.assertIn("DanglingRef", str(err))

    def test_non_class_shape(self):
        self.assertFails(42)

    def test_scalar_types_are_not_shapes(self):
        self.assertFails(int)
        self.assertFails(Level)
        self.assertFails(dict)


if __name__ == "__main__":
    unittest.main()
