import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from .linker import DEFAULT_WORKERS

MANIFEST_NAME = "clifc.toml"


@dataclass
class SourcesConfig:
    """Where to look for ``.clif`` units."""

    paths: list[str] = field(default_factory=lambda: ["./"])


@dataclass
class NativesConfig:
    """Native symbol table produced by the native front end."""

    symbols: str = "natives.json"


@dataclass
class ScriptingConfig:
    """Scripting registry; None means import modules and inspect them."""

    symbols: str | None = None


@dataclass
class CompileConfig:
    workers: int = DEFAULT_WORKERS


@dataclass
class LoggingConfig:
    level: str = "WARNING"


@dataclass
class ProjectManifest:
    """Parsed ``clifc.toml``."""

    name: str
    version: str = "0.1.0"
    sources: SourcesConfig = field(default_factory=SourcesConfig)
    natives: NativesConfig = field(default_factory=NativesConfig)
    scripting: ScriptingConfig = field(default_factory=ScriptingConfig)
    compile: CompileConfig = field(default_factory=CompileConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def source_paths(self) -> list[str]:
        return self.sources.paths


def load_manifest(path: Path) -> ProjectManifest:
    data = tomllib.loads(path.read_text(encoding="utf-8"))

    project = data.get("project", {})
    sources = data.get("sources", {})
    natives = data.get("natives", {})
    scripting = data.get("scripting", {})
    compile_data = data.get("compile", {})
    logging_data = data.get("logging", {})

    workers = compile_data.get("workers", DEFAULT_WORKERS)
    if not isinstance(workers, int) or workers < 1:
        raise ValueError(f"[compile] workers must be a positive integer, got {workers!r}")

    return ProjectManifest(
        name=project.get("name", path.parent.name),
        version=project.get("version", "0.1.0"),
        sources=SourcesConfig(paths=sources.get("paths", ["./"])),
        natives=NativesConfig(symbols=natives.get("symbols", "natives.json")),
        scripting=ScriptingConfig(symbols=scripting.get("symbols")),
        compile=CompileConfig(workers=workers),
        logging=LoggingConfig(level=str(logging_data.get("level", "WARNING")).upper()),
    )
