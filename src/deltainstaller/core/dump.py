"""Dump: report the ZIP metadata of a package's installed APKs."""

from deltainstaller.core.command import Command
from deltainstaller.core.package_manager import ApkRetriever
from deltainstaller.core.workspace import Workspace
from deltainstaller.models.response import (
    ApkDump,
    DumpResponse,
    DumpStatus,
    PackageDump,
)
from deltainstaller.utils.apk import read_archive_info


class DumpCommand(Command):
    """Extracts central directories and signing blocks for the given packages.

    The host diffs these against its local build to compute the patches of a
    later ``deltapreinstall`` request.
    """

    def __init__(self, workspace: Workspace):
        super().__init__(workspace)
        self.package_names: list[str] = []

    def parse_parameters(self, args: list[str]) -> None:
        if not args:
            self.workspace.events.error("dump: expected at least one package name")
            return
        self.package_names = list(args)
        self.ready_to_run = True

    def run(self) -> None:
        """Dump every APK of every requested package.

        Raises:
            ApkFormatError: If an installed APK cannot be parsed.
        """
        response = DumpResponse()
        self.workspace.response.dump_response = response

        with self.workspace.events.phase("Dump"):
            for package_name in self.package_names:
                apks = ApkRetriever(self.workspace, package_name).get()
                if not apks:
                    self.workspace.events.error(f"Package not found: {package_name}")
                    response.status = DumpStatus.ERROR_PACKAGE_NOT_FOUND
                    return

                package = PackageDump(name=package_name)
                for apk_path in apks:
                    info = read_archive_info(self.workspace.resolve(apk_path))
                    package.apks.append(
                        ApkDump(
                            name=apk_path.rsplit("/", 1)[-1],
                            absolute_path=apk_path,
                            cd=info.cd,
                            signature=info.signature,
                        )
                    )
                response.packages.append(package)

        response.status = DumpStatus.OK
