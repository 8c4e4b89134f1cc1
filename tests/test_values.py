"""Tests for intercomm.values."""

import math
import os

import numpy as np
import pytest

from intercomm.errors import InvariantError
from intercomm.handle import SharedHandle
from intercomm.kinds import (
    INT_BOUNDS,
    EnumKind,
    FlagsKind,
    ListKind,
    OptionKind,
    RecordKind,
    ResultKind,
    ScalarKind,
    TupleKind,
    UnionKind,
    VariantKind,
)
from intercomm.values import (
    VBool,
    VChar,
    VEnum,
    VF32,
    VF64,
    VFlags,
    VHandle,
    VList,
    VOption,
    VRecord,
    VResult,
    VS8,
    VS16,
    VS32,
    VS64,
    VString,
    VTuple,
    VU8,
    VU16,
    VU32,
    VU64,
    VUnion,
    VVariant,
)

INTEGER_VALUES = [VS8, VU8, VS16, VU16, VS32, VU32, VS64, VU64]


class TestIntegers:
    @pytest.mark.parametrize("cls", INTEGER_VALUES)
    def test_bounds_round_trip_through_text(self, cls):
        lo, hi = INT_BOUNDS[cls.KIND]
        for x in (lo, hi, (lo + hi) // 2):
            assert int(str(cls(x))) == x

    @pytest.mark.parametrize("cls", INTEGER_VALUES)
    def test_out_of_range(self, cls):
        lo, hi = INT_BOUNDS[cls.KIND]
        with pytest.raises(InvariantError):
            cls(hi + 1)
        with pytest.raises(InvariantError):
            cls(lo - 1)

    def test_kind(self):
        assert VU16(7).kind() is ScalarKind.U16

    def test_numpy_integer_accepted(self):
        assert VS8(np.int8(-3)).value == -3
        assert type(VS8(np.int8(-3)).value) is int

    def test_rejects_bool_and_float(self):
        with pytest.raises(InvariantError):
            VS32(True)
        with pytest.raises(InvariantError):
            VS32(1.5)

    def test_widths_are_distinct(self):
        assert VS8(1) != VU8(1)


class TestFloats:
    def test_none_is_nan(self):
        assert str(VF64(None)) == "NaN"
        assert VF32(None).is_nan

    def test_of_maps_nan_to_none(self):
        assert VF64.of(float("nan")) == VF64(None)
        assert VF32.of(np.float32("nan")).value is None

    def test_nan_value_rejected(self):
        with pytest.raises(InvariantError):
            VF64(math.nan)

    def test_canonical_text(self):
        assert str(VF64(1.0)) == "1"
        assert str(VF64(0.1)) == "0.1"
        assert str(VF64(-0.0)) == "-0"
        assert str(VF64(1e20)) == "100000000000000000000"
        assert str(VF64(math.inf)) == "inf"
        assert str(VF64(-math.inf)) == "-inf"

    def test_f32_shortest_text(self):
        assert str(VF32.of(np.float32(0.1))) == "0.1"

    @pytest.mark.parametrize("x", [0.1, 1 / 3, -2.5e-8, 3.4028235e38, 1e-45, 123456.789])
    def test_f32_round_trip(self, x):
        v = VF32.of(np.float32(x))
        assert np.float32(str(v)) == np.float32(x)

    @pytest.mark.parametrize("x", [0.1, 1 / 3, -2.5e-300, 1.7976931348623157e308, 5e-324, math.pi])
    def test_f64_round_trip(self, x):
        assert float(str(VF64(x))) == x

    def test_f32_held_at_single_precision(self):
        assert VF32(0.1).value == float(np.float32(0.1))


class TestCharStringBool:
    def test_char(self):
        assert str(VChar("é")) == "é"
        assert VChar("x").kind() is ScalarKind.Char

    @pytest.mark.parametrize("bad", ["", "ab", "\ud800"])
    def test_char_invalid(self, bad):
        with pytest.raises(InvariantError):
            VChar(bad)

    def test_string_verbatim(self):
        assert str(VString("  spaced  \t")) == "  spaced  \t"

    def test_bool(self):
        assert str(VBool(True)) == "true"
        assert str(VBool(False)) == "false"


class TestHandle:
    def test_kind(self):
        handle = SharedHandle(os.open(os.devnull, os.O_RDONLY))
        assert VHandle(handle).kind() is ScalarKind.Handle

    def test_values_share_one_handle(self):
        handle = SharedHandle(os.open(os.devnull, os.O_RDONLY))
        a, b = VHandle(handle), VHandle(handle)
        assert a.handle is b.handle


class TestComposites:
    def test_record_kind_is_structural(self):
        value = VRecord([("x", VS32(1)), ("name", VString("a"))])
        assert value.kind() == RecordKind([("x", ScalarKind.S32), ("name", ScalarKind.String)])

    def test_tuple_kind_is_structural(self):
        value = VTuple([VU8(1), VTuple([VBool(True)])])
        assert value.kind() == TupleKind([ScalarKind.U8, TupleKind([ScalarKind.Bool])])

    def test_list_carries_elem_kind(self):
        empty = VList(ScalarKind.U32, [])
        assert empty.kind() == ListKind(ScalarKind.U32)

    def test_list_elements_must_match(self):
        with pytest.raises(InvariantError):
            VList(ScalarKind.U32, [VU32(1), VS32(2)])

    def test_variant(self):
        arms = VariantKind([("num", ScalarKind.S64), ("text", ScalarKind.String)])
        value = VVariant(arms, "text", VString("hi"))
        assert value.kind() == arms
        assert str(value) == "text(hi)"

    def test_variant_unknown_label(self):
        arms = VariantKind([("num", ScalarKind.S64)])
        with pytest.raises(InvariantError):
            VVariant(arms, "text", VString("hi"))

    def test_variant_payload_mismatch(self):
        arms = VariantKind([("num", ScalarKind.S64)])
        with pytest.raises(InvariantError):
            VVariant(arms, "num", VString("hi"))

    def test_enum(self):
        names = EnumKind(["red", "green"])
        assert VEnum(names, "green").kind() == names
        with pytest.raises(InvariantError):
            VEnum(names, "blue")

    def test_flags_pair_every_name(self):
        value = VFlags([("read", True), ("write", False)])
        assert value.kind() == FlagsKind(["read", "write"])
        assert value.is_set("read")
        assert not value.is_set("write")
        with pytest.raises(KeyError):
            value.is_set("exec")

    def test_flags_duplicate_names(self):
        with pytest.raises(InvariantError):
            VFlags([("read", True), ("read", False)])

    def test_option(self):
        assert VOption(ScalarKind.U8).kind() == OptionKind(ScalarKind.U8)
        assert str(VOption(ScalarKind.U8, VU8(4))) == "some(4)"
        with pytest.raises(InvariantError):
            VOption(ScalarKind.U8, VS8(4))

    def test_union(self):
        alts = UnionKind([ScalarKind.U32, ScalarKind.String])
        assert VUnion(alts, 1, VString("x")).kind() == alts
        with pytest.raises(InvariantError):
            VUnion(alts, 2, VString("x"))
        with pytest.raises(InvariantError):
            VUnion(alts, 0, VString("x"))

    def test_result(self):
        value = VResult(ScalarKind.U8, ScalarKind.String, False, VString("boom"))
        assert value.kind() == ResultKind(ScalarKind.U8, ScalarKind.String)
        assert str(value) == "err(boom)"
        with pytest.raises(InvariantError):
            VResult(ScalarKind.U8, ScalarKind.String, True, VString("boom"))

    def test_kind_is_stable(self):
        value = VRecord([("xs", VList(ScalarKind.S8, [VS8(1)]))])
        assert value.kind() == value.kind()
