"""Convert game-scene instance trees into filesystem projects."""

from .errors import (
    ConversionError,
    DestinationIOError,
    FragmentCodecError,
    MalformedPathError,
    MissingParentError,
    WrongNodeKindError,
)
from .filesystem import PROJECT_FILE_NAME, FileSystem, reset_destination
from .fragment import FRAGMENT_SUFFIX, FragmentCodec, is_fragment_name
from .instance_tree import (
    Instance,
    InstanceTree,
    load_tree_from_file,
    load_tree_from_mapping,
)
from .instructions import (
    AddToTree,
    CreateFile,
    CreateFolder,
    Instruction,
    InstructionReader,
    Project,
    TreePartition,
    normalise_path,
)
from .settings import ConversionSettings
from .virtual_fs import (
    BytesContents,
    InstanceContents,
    VfsContents,
    VirtualFile,
    VirtualFileSystem,
)
from .walker import collect_instructions, iter_instructions, process_instructions

__all__ = [
    "AddToTree",
    "BytesContents",
    "ConversionError",
    "ConversionSettings",
    "CreateFile",
    "CreateFolder",
    "DestinationIOError",
    "FRAGMENT_SUFFIX",
    "FileSystem",
    "FragmentCodec",
    "FragmentCodecError",
    "Instance",
    "InstanceContents",
    "InstanceTree",
    "Instruction",
    "InstructionReader",
    "MalformedPathError",
    "MissingParentError",
    "PROJECT_FILE_NAME",
    "Project",
    "TreePartition",
    "VfsContents",
    "VirtualFile",
    "VirtualFileSystem",
    "WrongNodeKindError",
    "collect_instructions",
    "is_fragment_name",
    "iter_instructions",
    "load_tree_from_file",
    "load_tree_from_mapping",
    "normalise_path",
    "process_instructions",
    "reset_destination",
]
