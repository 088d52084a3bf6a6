"""Download service for module upgrade packages."""

from pathlib import Path
import asyncio
import logging

import httpx
import aiofiles

from ota_agent.models.package import ModuleOTAPackage


class DownloadService:
    """Streams a package into the download directory."""

    def __init__(
        self,
        package_save_path: Path,
        timeout: float = 60.0,
        verify_tls: bool = True,
    ):
        """Initialize download service.

        Args:
            package_save_path: Directory packages are written into
            timeout: Deadline for the whole download in seconds, also applied
                to each connect/read phase
            verify_tls: Validate the server certificate; False accepts any certificate
        """
        self.logger = logging.getLogger("ota_agent.download")
        self.package_save_path = Path(package_save_path)
        self.timeout = timeout
        self.verify_tls = verify_tls
        self.chunk_size = 64 * 1024  # 64KB chunks for progress granularity

    def ensure_directory(self) -> None:
        """Create the download directory if missing (safe to call concurrently)."""
        self.package_save_path.mkdir(parents=True, exist_ok=True)

    async def download_package(self, package: ModuleOTAPackage) -> Path:
        """Download ``package.url`` into ``<package_save_path>/<file_name>``.

        An existing file at the target path is overwritten.

        Args:
            package: Package descriptor

        Returns:
            Path to the downloaded file

        Raises:
            httpx.HTTPError: If the request fails or returns an error status
            httpx.TimeoutException: If the download does not finish within ``timeout``
            OSError: If the file cannot be written
        """
        self.ensure_directory()
        target_path = self.package_save_path / package.file_name
        self.logger.info(
            f"Starting download: module={package.module}, version={package.version}, "
            f"url={package.url}"
        )
        if not self.verify_tls:
            self.logger.warning(
                "TLS certificate validation disabled for package download"
            )

        try:
            bytes_downloaded = await asyncio.wait_for(
                self._fetch(package.url, target_path), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            # A slow trickle keeps every read under the phase timeout
            raise httpx.TimeoutException(
                f"Download of {package.file_name} exceeded {self.timeout}s"
            ) from None

        self.logger.info(f"Downloaded {bytes_downloaded} bytes to {target_path}")
        return target_path

    async def _fetch(self, url: str, target_path: Path) -> int:
        bytes_downloaded = 0
        async with httpx.AsyncClient(
            timeout=self.timeout, verify=self.verify_tls, follow_redirects=True
        ) as client:
            async with client.stream("GET", url) as response:
                response.raise_for_status()
                total = int(response.headers.get("Content-Length", 0) or 0)

                async with aiofiles.open(target_path, "wb") as f:
                    last_progress = -1
                    async for chunk in response.aiter_bytes(chunk_size=self.chunk_size):
                        await f.write(chunk)
                        bytes_downloaded += len(chunk)

                        if total > 0:
                            current_progress = min(int((bytes_downloaded / total) * 100), 100)
                            if current_progress >= last_progress + 5:
                                last_progress = current_progress
                                self.logger.debug(
                                    f"Download progress: {current_progress}% "
                                    f"({bytes_downloaded}/{total} bytes)"
                                )
        return bytes_downloaded
