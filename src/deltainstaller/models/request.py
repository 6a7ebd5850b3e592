"""Pydantic models for delta install requests."""

from pydantic import BaseModel, ConfigDict, Field


class PatchEdit(BaseModel):
    """A run of new bytes replacing the destination file at ``offset``."""

    model_config = ConfigDict(ser_json_bytes="base64", val_json_bytes="base64")

    offset: int = Field(ge=0)
    """Destination offset where ``data`` starts."""

    data: bytes
    """Replacement bytes."""

    @property
    def end(self) -> int:
        """Destination offset just past this edit."""
        return self.offset + len(self.data)


class PatchInstruction(BaseModel):
    """Edits turning one installed APK into its new version."""

    src_absolute_path: str
    """Absolute on-device path of the installed APK."""

    dst_filesize: int = Field(ge=0)
    """Total size of the new APK in bytes."""

    patches: list[PatchEdit] = Field(default_factory=list)
    """Edits in ascending offset order. Empty means unchanged under inherit."""

    @property
    def name(self) -> str:
        """File name used for the install session entry."""
        return self.src_absolute_path.rsplit("/", 1)[-1]


class DeltaInstallRequest(BaseModel):
    """Request for the ``deltapreinstall`` command."""

    package_name: str
    """Package whose APKs are being patched (e.g., com.example.app)."""

    inherit: bool = False
    """Reuse the installed package's unchanged APKs in the new session."""

    patch_instructions: list[PatchInstruction] = Field(default_factory=list)
    """One instruction per APK, applied in order."""
