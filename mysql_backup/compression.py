"""
Compression helpers for MySQL Backup.
"""

import gzip
import logging
import shutil
import tarfile
from pathlib import Path
from typing import Optional

from .errors import CompressionError
from .models import CompressionResult
from .utils import format_size


class Compressor:
    """gzip / tar.gz compression of backup files."""

    COMPRESSION_LEVEL = 9
    CHUNK_SIZE = 1024 * 1024

    def __init__(self, level: int = COMPRESSION_LEVEL):
        self.level = level

    @staticmethod
    def compression_ratio(original_size: int, compressed_size: int) -> Optional[float]:
        """Space saved as a percentage, or None for an empty original."""
        if original_size <= 0:
            return None
        return (1 - compressed_size / original_size) * 100

    def compress_file(
        self,
        input_path: Path,
        output_path: Optional[Path] = None,
        remove_source: bool = False
    ) -> CompressionResult:
        """gzip a single file to `<input>.gz`."""
        input_path = Path(input_path)
        output_path = Path(output_path) if output_path else Path(f"{input_path}.gz")

        logging.info(f"Compressing file: {input_path}")
        try:
            original_size = input_path.stat().st_size
            with open(input_path, 'rb') as source, \
                    gzip.open(output_path, 'wb', compresslevel=self.level) as destination:
                shutil.copyfileobj(source, destination, self.CHUNK_SIZE)
            compressed_size = output_path.stat().st_size
        except (OSError, EOFError, gzip.BadGzipFile) as e:
            logging.error(f"Compression error: {e}")
            raise CompressionError(f"Failed to compress {input_path}: {e}") from e

        ratio = self.compression_ratio(original_size, compressed_size)
        if ratio is None:
            logging.info(f"Compression complete. Size: {format_size(compressed_size)}")
        else:
            logging.info(
                f"Compression complete. Size: {format_size(compressed_size)} "
                f"({ratio:.1f}% smaller)"
            )

        if remove_source:
            try:
                input_path.unlink()
            except OSError as e:
                raise CompressionError(f"Failed to remove {input_path}: {e}") from e
            logging.debug(f"Removed uncompressed file: {input_path}")

        return CompressionResult(path=output_path, size=compressed_size, ratio=ratio)

    def compress_files(self, files: list[Path], archive_path: Path) -> CompressionResult:
        """Pack several files into one `.tar.gz` archive. Missing files are skipped."""
        archive_path = Path(archive_path)
        logging.info(f"Compressing {len(files)} files into archive: {archive_path}")

        try:
            with tarfile.open(archive_path, 'w:gz', compresslevel=self.level) as archive:
                for file in map(Path, files):
                    if not file.exists():
                        logging.warning(f"Skipping missing file: {file}")
                        continue
                    archive.add(file, arcname=file.name)
            size = archive_path.stat().st_size
        except (OSError, tarfile.TarError) as e:
            logging.error(f"Archive creation error: {e}")
            raise CompressionError(f"Failed to create archive {archive_path}: {e}") from e

        logging.info(f"Archive created. Size: {format_size(size)}")
        return CompressionResult(path=archive_path, size=size)

    def decompress_file(self, input_path: Path, output_path: Optional[Path] = None) -> Path:
        """Decompress a `.gz` file next to itself, or unpack the SQL file from a `.tar.gz`."""
        input_path = Path(input_path)
        if input_path.name.endswith(('.tar.gz', '.tgz')):
            return self._extract_archive(input_path, output_path)

        if output_path is None:
            if input_path.suffix != '.gz':
                raise CompressionError(f"Not a gzip file name: {input_path}")
            output_path = input_path.with_suffix('')
        output_path = Path(output_path)

        logging.info(f"Decompressing file: {input_path}")
        try:
            with gzip.open(input_path, 'rb') as source, open(output_path, 'wb') as destination:
                shutil.copyfileobj(source, destination, self.CHUNK_SIZE)
        except (OSError, EOFError, gzip.BadGzipFile) as e:
            logging.error(f"Decompression error: {e}")
            raise CompressionError(f"Failed to decompress {input_path}: {e}") from e

        logging.info(f"Decompression complete: {output_path}")
        return output_path

    def _extract_archive(self, input_path: Path, output_path: Optional[Path]) -> Path:
        logging.info(f"Extracting archive: {input_path}")
        try:
            with tarfile.open(input_path, 'r:gz') as archive:
                members = [m for m in archive.getmembers() if m.isfile()]
                sql_members = [m for m in members if m.name.endswith('.sql')] or members
                if not sql_members:
                    raise CompressionError(f"Archive contains no files: {input_path}")
                member = sql_members[0]
                destination_path = Path(output_path) if output_path else input_path.parent / Path(member.name).name
                source = archive.extractfile(member)
                with source, open(destination_path, 'wb') as destination:
                    shutil.copyfileobj(source, destination, self.CHUNK_SIZE)
        except (OSError, EOFError, tarfile.TarError) as e:
            logging.error(f"Decompression error: {e}")
            raise CompressionError(f"Failed to extract {input_path}: {e}") from e

        logging.info(f"Decompression complete: {destination_path}")
        return destination_path
