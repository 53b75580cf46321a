"""GitHub release source (``github-release``).

Tracks the most recently created release of a repository. The release tag
is hashed into the version fingerprint, so any new release (even one with
a "smaller" tag) counts as an update.

Assets are downloaded into a staging directory first; the target directory
is only touched once every download has succeeded and every zip archive
has been validated.
"""

from __future__ import annotations

import shutil
import tempfile
import urllib.error
import zipfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any, Dict, List, Mapping, Optional

from ..errors import InvalidConfigurationError, RemoteUnavailableError
from ..fingerprint import VersionFingerprint
from ..utils import http_download, http_get_json
from .base import ConfiguredSource, Logger

SOURCE_NAME = "github-release"
_DEFAULT_API = "https://api.github.com"


@dataclass(frozen=True)
class GitHubReleaseOptions:
    repository_owner: Optional[str] = None
    repository_name: Optional[str] = None
    repository_id: Optional[int] = None
    access_token: Optional[str] = None
    target_file: Optional[str] = None
    decompress_zip_files: bool = False
    zips_to_subdirectory: bool = False
    api_url: str = _DEFAULT_API
    timeout: float = 30.0

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "GitHubReleaseOptions":
        if not isinstance(data, Mapping):
            raise InvalidConfigurationError("github-release options must be an object")

        def _text(key: str) -> Optional[str]:
            value = data.get(key)
            if value is None:
                return None
            if not isinstance(value, str):
                raise InvalidConfigurationError(f"'{key}' must be a string")
            return value.strip() or None

        def _flag(key: str) -> bool:
            value = data.get(key, False)
            if not isinstance(value, bool):
                raise InvalidConfigurationError(f"'{key}' must be true or false")
            return value

        repo_id = data.get("repository_id")
        if repo_id is not None and (
            isinstance(repo_id, bool) or not isinstance(repo_id, int)
        ):
            raise InvalidConfigurationError("'repository_id' must be an integer")

        owner = _text("repository_owner")
        name = _text("repository_name")
        if repo_id is None and not (owner and name):
            raise InvalidConfigurationError(
                "Set 'repository_id', or both 'repository_owner' and 'repository_name'"
            )

        timeout = data.get("timeout", 30.0)
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            raise InvalidConfigurationError("'timeout' must be a positive number")

        return cls(
            repository_owner=owner,
            repository_name=name,
            repository_id=repo_id,
            access_token=_text("access_token"),
            target_file=_text("target_file"),
            decompress_zip_files=_flag("decompress_zip_files"),
            zips_to_subdirectory=_flag("zips_to_subdirectory"),
            api_url=(_text("api_url") or _DEFAULT_API).rstrip("/"),
            timeout=float(timeout),
        )

    @property
    def releases_url(self) -> str:
        if self.repository_id is not None:
            return f"{self.api_url}/repositories/{self.repository_id}/releases"
        return f"{self.api_url}/repos/{self.repository_owner}/{self.repository_name}/releases"

    @property
    def label(self) -> str:
        if self.repository_owner and self.repository_name:
            return f"{self.repository_owner}/{self.repository_name}"
        return f"#{self.repository_id}"


class GitHubReleaseSource(ConfiguredSource):
    description = """\
This source looks at the target repository's releases and fingerprints the
tag of the most recently created release.
Options:
    - repository_owner: The owner of the repository. Set together with
      repository_name, or leave both unset and use repository_id.
    - repository_name: The name of the repository.
    - repository_id: The numeric id of the repository.
    - access_token: A GitHub token, required for private repositories.
    - target_file: Download only the asset with this name. When unset, every
      asset of the release is downloaded.
    - decompress_zip_files: true to extract .zip assets instead of copying them.
    - zips_to_subdirectory: true to extract each zip into a subdirectory named
      after the archive; false to extract into the target directory itself.
    - api_url: GitHub API root, for GitHub Enterprise (default https://api.github.com).
    - timeout: Network timeout in seconds (default 30).
"""

    example_options = {
        "repository_owner": "octo-org",
        "repository_name": "octo-app",
        "access_token": None,
        "target_file": "octo-app-win-x64.zip",
        "decompress_zip_files": True,
        "zips_to_subdirectory": False,
    }

    options: Optional[GitHubReleaseOptions] = None

    def configure(self, options: Mapping[str, Any]) -> None:
        self.options = GitHubReleaseOptions.from_mapping(options)

    def check_for_update(self, current: VersionFingerprint) -> bool:
        self.require_configured()
        release = self._latest_release()
        if release is None:
            return False
        return VersionFingerprint.from_tag(release["tag_name"]) != current

    def perform_update(
        self, logger: Logger, target_directory: Path
    ) -> Optional[VersionFingerprint]:
        opts: GitHubReleaseOptions = self.require_configured()
        target_directory = Path(target_directory)

        logger.info("Obtaining release information for %s", opts.label)
        release = self._latest_release()
        if release is None:
            logger.warning("Repository %s has no releases", opts.label)
            return None

        assets = [a for a in release.get("assets") or [] if isinstance(a, dict)]
        if opts.target_file:
            assets = [a for a in assets if a.get("name") == opts.target_file]
            if not assets:
                logger.error("Could not find asset file '%s'", opts.target_file)
                return None

        with tempfile.TemporaryDirectory(prefix="auto-updater-") as staging:
            downloaded: List[Path] = []
            for asset in assets:
                name = _asset_file_name(asset.get("name"))
                if name is None:
                    logger.warning("Skipping asset with unusable name %r", asset.get("name"))
                    continue
                dest = Path(staging) / name
                logger.debug("Downloading %s", name)
                try:
                    url, headers = self._asset_request(asset)
                    http_download(url, dest, timeout=opts.timeout, headers=headers)
                except (urllib.error.URLError, OSError, KeyError) as e:
                    logger.error("Download of %s failed: %s", name, e)
                    return None
                downloaded.append(dest)

            archives = [
                p
                for p in downloaded
                if opts.decompress_zip_files and p.suffix.lower() == ".zip"
            ]
            for archive in archives:
                problem = _zip_problem(archive)
                if problem:
                    logger.error("Refusing to extract %s: %s", archive.name, problem)
                    return None

            target_directory.mkdir(parents=True, exist_ok=True)
            for path in downloaded:
                if path in archives:
                    dest_dir = (
                        target_directory / path.stem
                        if opts.zips_to_subdirectory
                        else target_directory
                    )
                    dest_dir.mkdir(parents=True, exist_ok=True)
                    logger.debug("Extracting %s into %s", path.name, dest_dir)
                    with zipfile.ZipFile(path) as zf:
                        zf.extractall(dest_dir)
                else:
                    final = target_directory / path.name
                    logger.debug("Moving %s to %s", path.name, final)
                    if final.is_file() or final.is_symlink():
                        final.unlink()
                    shutil.move(str(path), str(final))

        tag = release["tag_name"]
        fingerprint = VersionFingerprint.from_tag(tag)
        logger.info(
            "Pulled release %s of %s into %s (fingerprint %s)",
            tag,
            opts.label,
            target_directory,
            fingerprint,
        )
        return fingerprint

    def _headers(self, accept: str = "application/vnd.github+json") -> Dict[str, str]:
        opts: GitHubReleaseOptions = self.require_configured()
        headers = {"Accept": accept}
        if opts.access_token:
            headers["Authorization"] = f"Bearer {opts.access_token}"
        return headers

    def _asset_request(self, asset: Mapping[str, Any]):
        opts: GitHubReleaseOptions = self.require_configured()
        # Private assets are only reachable through the API url with a token.
        if opts.access_token and asset.get("url"):
            return asset["url"], self._headers("application/octet-stream")
        return asset["browser_download_url"], {}

    def _latest_release(self) -> Optional[Dict[str, Any]]:
        opts: GitHubReleaseOptions = self.require_configured()
        data, error = http_get_json(
            f"{opts.releases_url}?per_page=100",
            timeout=opts.timeout,
            headers=self._headers(),
        )
        if error:
            raise RemoteUnavailableError(f"GitHub releases for {opts.label}: {error}")
        if not isinstance(data, list):
            raise RemoteUnavailableError(
                f"GitHub releases for {opts.label}: unexpected response"
            )
        releases = [
            r
            for r in data
            if isinstance(r, dict) and isinstance(r.get("tag_name"), str)
        ]
        if not releases:
            return None
        return max(releases, key=lambda r: str(r.get("created_at") or ""))


def _asset_file_name(name: Any) -> Optional[str]:
    if not isinstance(name, str):
        return None
    base = PurePosixPath(name.replace("\\", "/")).name
    if base in {"", ".", ".."}:
        return None
    return base


def _zip_problem(path: Path) -> Optional[str]:
    """Return why ``path`` must not be extracted, or ``None`` when it is fine."""
    try:
        with zipfile.ZipFile(path) as zf:
            for member in zf.namelist():
                parts = PurePosixPath(member.replace("\\", "/")).parts
                if member.startswith(("/", "\\")) or ".." in parts or (
                    parts and ":" in parts[0]
                ):
                    return f"member '{member}' escapes the destination"
    except zipfile.BadZipFile as e:
        return str(e)
    return None


def register(registry) -> None:
    registry.register(SOURCE_NAME, GitHubReleaseSource)


__all__ = [
    "SOURCE_NAME",
    "GitHubReleaseOptions",
    "GitHubReleaseSource",
    "register",
]
