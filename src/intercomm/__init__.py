"""intercomm: launch child processes with typed arguments and inherited handles."""

from .command import make_command
from .convert import Char, Err, Ok, Result, kind_of, register, to_value
from .errors import (
    ConversionError,
    HandlePassingUnsupported,
    IntercommError,
    InvariantError,
    UnsupportedLowering,
)
from .handle import SharedHandle
from .kinds import (
    EnumKind,
    FlagsKind,
    InterType,
    ListKind,
    OptionKind,
    RecordKind,
    ResultKind,
    ScalarKind,
    TupleKind,
    UnionKind,
    VariantKind,
)
from .process import FIRST_HANDLE_FD, Child, Convention, Duplication, Output, ProcessSpec
from .values import (
    Value,
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

__all__ = [
    "make_command",
    "Convention",
    "ProcessSpec",
    "Duplication",
    "Child",
    "Output",
    "FIRST_HANDLE_FD",
    "SharedHandle",
    "kind_of",
    "to_value",
    "register",
    "Char",
    "Ok",
    "Err",
    "Result",
    "InterType",
    "ScalarKind",
    "TupleKind",
    "ListKind",
    "RecordKind",
    "VariantKind",
    "EnumKind",
    "FlagsKind",
    "OptionKind",
    "UnionKind",
    "ResultKind",
    "Value",
    "VS8",
    "VU8",
    "VS16",
    "VU16",
    "VS32",
    "VU32",
    "VS64",
    "VU64",
    "VF32",
    "VF64",
    "VChar",
    "VString",
    "VBool",
    "VHandle",
    "VVariant",
    "VRecord",
    "VList",
    "VTuple",
    "VFlags",
    "VEnum",
    "VOption",
    "VUnion",
    "VResult",
    "IntercommError",
    "InvariantError",
    "ConversionError",
    "UnsupportedLowering",
    "HandlePassingUnsupported",
]
