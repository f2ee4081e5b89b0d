from pathlib import Path

from .manifest import ProjectManifest

SOURCE_SUFFIX = ".clif"


def discover_clif_files(root: Path, manifest: ProjectManifest) -> list[Path]:
    files: list[Path] = []
    for rel in manifest.source_paths:
        base = (root / rel).resolve()
        if not base.exists():
            continue
        if base.is_file():
            if base.suffix == SOURCE_SUFFIX:
                files.append(base)
            continue
        for p in base.rglob(f"*{SOURCE_SUFFIX}"):
            files.append(p)
    return sorted(set(files))
