"""Rebuilds a new APK from an installed one and a list of edits."""

import os
from pathlib import Path
from typing import BinaryIO

from deltainstaller.exceptions import PatchError
from deltainstaller.models.request import PatchInstruction

CHUNK_SIZE = 64 * 1024


def required_source_size(instruction: PatchInstruction) -> int:
    """Number of leading source bytes the patched file copies from.

    Bytes covered by an edit are not read from the source, so this is the
    end of the last uncovered range of the new file.
    """
    required = 0
    position = 0
    for edit in instruction.patches:
        if edit.offset > position:
            required = edit.offset
        position = edit.end
    if instruction.dst_filesize > position:
        required = instruction.dst_filesize
    return required


class PatchApplier:
    """Streams patched APK bytes into a binary sink.

    Bytes covered by an edit come from the edit, every other byte is copied
    from the installed APK at the same offset. :meth:`open_source` does every
    check that can fail before any byte is produced, so callers can reject
    an instruction before opening the sink; :meth:`stream` then only fails
    if the source changes underneath it or the sink breaks.
    """

    def __init__(self, root: Path):
        """Initialize patch applier.

        Args:
            root: Filesystem root the instruction's absolute paths live under.
        """
        self.root = root

    def source_path(self, instruction: PatchInstruction) -> Path:
        return self.root / instruction.src_absolute_path.lstrip("/")

    def validate(self, instruction: PatchInstruction) -> None:
        """Check that edits are ordered, disjoint and inside the new file.

        Raises:
            PatchError: If the edit list is inconsistent.
        """
        position = 0
        for edit in instruction.patches:
            if edit.offset < position:
                raise PatchError(
                    f"Edits for {instruction.name} overlap or are unordered "
                    f"at offset {edit.offset}"
                )
            position = edit.end

        if position > instruction.dst_filesize:
            raise PatchError(
                f"Edits for {instruction.name} end at {position}, past the "
                f"declared size {instruction.dst_filesize}"
            )

    def open_source(self, instruction: PatchInstruction) -> BinaryIO:
        """Validate the instruction and open its source APK.

        Args:
            instruction: Patch instruction to check.

        Returns:
            The source file, opened for reading. The caller closes it.

        Raises:
            PatchError: If the edits are invalid or the source APK is missing
                or too short.
        """
        self.validate(instruction)
        src_path = self.source_path(instruction)

        try:
            src = src_path.open("rb")
        except OSError as e:
            raise PatchError(f"Unable to open {src_path}: {e}") from e

        required = required_source_size(instruction)
        size = os.fstat(src.fileno()).st_size
        if size < required:
            src.close()
            raise PatchError(
                f"{src_path} is too short: needed {required} bytes, has {size}"
            )

        return src

    def stream(
        self, instruction: PatchInstruction, src: BinaryIO, out: BinaryIO
    ) -> int:
        """Write the patched file to ``out``, reading unchanged bytes from ``src``.

        Returns:
            Number of bytes written.

        Raises:
            PatchError: If ``src`` ends early.
        """
        written = 0
        for edit in instruction.patches:
            written += self._copy(src, out, written, edit.offset)
            out.write(edit.data)
            written += len(edit.data)
        written += self._copy(src, out, written, instruction.dst_filesize)
        return written

    def apply(self, instruction: PatchInstruction, out: BinaryIO) -> int:
        """Check the instruction, then write the patched file to ``out``.

        Args:
            instruction: Patch instruction to apply.
            out: Binary sink.

        Returns:
            Number of bytes written.

        Raises:
            PatchError: If the edits are invalid or the source APK is missing
                or too short. Nothing is written to ``out`` in that case.
        """
        with self.open_source(instruction) as src:
            return self.stream(instruction, src, out)

    def _copy(self, src: BinaryIO, out: BinaryIO, start: int, end: int) -> int:
        """Copy source bytes [start, end) to ``out``."""
        if end <= start:
            return 0

        src.seek(start)
        remaining = end - start
        while remaining > 0:
            chunk = src.read(min(CHUNK_SIZE, remaining))
            if not chunk:
                raise PatchError(
                    f"{getattr(src, 'name', 'source')} is too short: needed "
                    f"bytes up to offset {end}"
                )
            out.write(chunk)
            remaining -= len(chunk)

        return end - start
