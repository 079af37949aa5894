"""
Transparent decompression of OCL input files

WOD98 ships its OCL files gzipped (``nbds1106.gz``); LZ4 frame files
(``*.lz4``) are accepted as well for locally recompressed archives.
"""

import gzip
from pathlib import Path
from typing import BinaryIO, Union

try:
    import lz4.frame
    HAS_LZ4 = True
except ImportError:
    HAS_LZ4 = False


GZIP_SUFFIXES = (".gz", ".gzip")
LZ4_SUFFIXES = (".lz4",)


def is_compressed(filename: Union[str, Path]) -> bool:
    """Check if filename carries a compression suffix we can undo

    Examples: nbds1106.gz, 1106.ocl.lz4
    """
    suffix = Path(filename).suffix.lower()
    return suffix in GZIP_SUFFIXES or suffix in LZ4_SUFFIXES


def open_ocl_file(filename: Union[str, Path], mode: str = 'rb') -> BinaryIO:
    """Open an OCL file, handling decompression if needed

    Args:
        filename: Path to OCL file (plain, .gz or .lz4)
        mode: File mode (should be 'rb' for binary read)

    Returns:
        File-like object (decompressing if compressed)

    Raises:
        ImportError: If file is LZ4 compressed but lz4 not installed
    """
    if mode != 'rb':
        raise ValueError(f"OCL files are opened read-only in binary mode, got {mode!r}")

    suffix = Path(filename).suffix.lower()

    if suffix in GZIP_SUFFIXES:
        return gzip.open(filename, mode)

    if suffix in LZ4_SUFFIXES:
        if not HAS_LZ4:
            raise ImportError(
                "lz4 package required for compressed OCL files. "
                "Install with: pip install lz4"
            )
        return lz4.frame.open(str(filename), mode)

    return open(filename, mode)
