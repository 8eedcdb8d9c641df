"""
Defines settings for pkgbridge
"""

import os
import pathlib


class PkgBridgeSettings:
    """
    Provides the various settings for pkgbridge
    """

    @staticmethod
    def get_pkgbridge_directory() -> str:
        """
        Returns the per-user pkgbridge directory, honouring PKGBRIDGE_HOME
        """
        pkgbridge_dir = os.environ.get("PKGBRIDGE_HOME") or str(
            pathlib.Path.home() / ".pkgbridge"
        )
        pathlib.Path(pkgbridge_dir).mkdir(parents=True, exist_ok=True)
        return pkgbridge_dir

    @staticmethod
    def get_cargo_target_directory() -> str:
        """
        Returns the shared target directory used for cargo builds
        """
        target_dir = str(
            pathlib.PurePath(PkgBridgeSettings.get_pkgbridge_directory(), "cargo", "target")
        )
        pathlib.Path(target_dir).mkdir(parents=True, exist_ok=True)
        return target_dir
