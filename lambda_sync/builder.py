# lambda_sync/builder.py
"""
Lambda package builder
Single Responsibility: Build Lambda deployment packages
"""
import logging
import subprocess
import sys
import zipfile
from pathlib import Path
from tempfile import TemporaryDirectory
from typing import Dict, Iterable, Optional

from .config import DeployConfig
from .exceptions import PackagingError

logger = logging.getLogger(__name__)

# Direct upload limit for zipped deployment packages
MAX_DIRECT_UPLOAD_MB = 50

SKIP_NAMES = {'__pycache__', '.git', '.pytest_cache', '.DS_Store'}
SKIP_SUFFIXES = {'.pyc', '.pyo'}


class LambdaBuilder:
    """Builds Lambda deployment packages (SRP)"""

    def __init__(self, config: DeployConfig):
        self.config = config
        self.source_dir = config.source_dir
        self.package_path = config.package_path

    def build(self) -> Path:
        """Build Lambda package and return path to zip file"""
        logger.info("🔨 Building Lambda package...")

        if not self.source_dir.is_dir():
            raise PackagingError(f"Source directory not found: {self.source_dir}")

        with TemporaryDirectory(prefix='lambda-sync-') as staging:
            dependency_dir = Path(staging)
            self._install_dependencies(dependency_dir)
            sources = self._collect_sources(self.config.includes)
            if not sources:
                raise PackagingError(
                    f"No source files matched {list(self.config.includes)} in {self.source_dir}")
            self._create_zip_package(sources, dependency_dir)

        size_mb = self.package_path.stat().st_size / (1024 * 1024)
        logger.info(f"✅ Package built: {self.package_path} ({size_mb:.2f} MB)")

        if size_mb > MAX_DIRECT_UPLOAD_MB:
            logger.warning(f"⚠️  Package size ({size_mb:.2f} MB) exceeds the {MAX_DIRECT_UPLOAD_MB} MB direct upload limit")

        return self.package_path

    def _install_dependencies(self, target_dir: Path) -> None:
        """Install production dependencies into target_dir using pip"""
        requirements_file = self.source_dir / self.config.requirements_file
        if not requirements_file.exists():
            logger.info(f"No {self.config.requirements_file} found, packaging without dependencies")
            return

        logger.info("📦 Installing production dependencies...")

        cmd = [
            sys.executable, '-m', 'pip', 'install',
            '-r', str(requirements_file),
            '--target', str(target_dir),
            '--no-cache-dir',
            '--quiet'
        ]

        try:
            subprocess.run(cmd, check=True, capture_output=True, text=True, cwd=self.source_dir)
        except subprocess.CalledProcessError as e:
            logger.error("❌ Failed to install dependencies")
            logger.error(f"   stdout: {e.stdout}")
            logger.error(f"   stderr: {e.stderr}")
            raise PackagingError(f"Dependency installation failed with exit code {e.returncode}") from e
        except OSError as e:
            raise PackagingError(f"Could not run pip: {e}") from e

        logger.info("✅ Dependencies installed")

    def _collect_sources(self, includes: Iterable[str]) -> Dict[str, Path]:
        """Map archive names to files for every include pattern"""
        sources: Dict[str, Path] = {}
        package_path = self.package_path.resolve()

        for pattern in includes:
            exact = self.source_dir / pattern
            if exact.is_file():
                matches = [exact]
            else:
                matches = sorted(self.source_dir.glob(pattern))
                if not matches:
                    logger.warning(f"⚠️  Include pattern matched nothing: {pattern}")

            for match in matches:
                for file_path in self._expand(match):
                    if file_path.resolve() == package_path:
                        continue
                    arcname = file_path.relative_to(self.source_dir).as_posix()
                    sources[arcname] = file_path

        logger.debug(f"  Collected {len(sources)} source files")
        return sources

    def _expand(self, path: Path) -> Iterable[Path]:
        if path.is_file():
            if not self._should_skip(path):
                yield path
            return
        if path.is_dir() and not self._should_skip(path):
            for child in sorted(path.rglob('*')):
                relative_parts = child.relative_to(path).parts
                if child.is_file() and not any(self._should_skip(Path(part)) for part in relative_parts):
                    yield child

    def _should_skip(self, item: Path) -> bool:
        """Check if item should be skipped"""
        return item.name in SKIP_NAMES or item.suffix in SKIP_SUFFIXES

    def _create_zip_package(self, sources: Dict[str, Path], dependency_dir: Optional[Path]) -> Path:
        """Create ZIP package for Lambda"""
        zip_path = self.package_path
        logger.info(f"📦 Creating ZIP package: {zip_path}")

        try:
            with zipfile.ZipFile(zip_path, 'w', zipfile.ZIP_DEFLATED, compresslevel=9) as zipf:
                dependency_count = 0
                if dependency_dir is not None:
                    for file_path in sorted(dependency_dir.rglob('*')):
                        if file_path.is_file() and not self._should_skip(file_path):
                            zipf.write(file_path, file_path.relative_to(dependency_dir).as_posix())
                            dependency_count += 1

                for arcname, file_path in sources.items():
                    zipf.write(file_path, arcname)
        except (OSError, zipfile.BadZipFile) as e:
            zip_path.unlink(missing_ok=True)
            raise PackagingError(f"Failed to create {zip_path}: {e}") from e

        logger.debug(f"  Added {len(sources)} source files and {dependency_count} dependency files")
        return zip_path
