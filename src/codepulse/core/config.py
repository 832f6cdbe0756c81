"""Configuration management for CodePulse (codepulse.toml parsing + defaults)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from codepulse.core.errors import InvalidConfig

try:
    import tomllib
except ImportError:
    try:
        import tomli as tomllib  # type: ignore[no-redef]
    except ImportError:
        tomllib = None  # type: ignore[assignment]


MIN_AUTO_APPLY_THRESHOLD = 0.70
MAX_AUTO_APPLY_THRESHOLD = 0.99

CONFIG_FILENAME = "codepulse.toml"
STATE_DIRNAME = ".codepulse"


@dataclass
class ScanConfig:
    extensions: list[str] = field(
        default_factory=lambda: [".ts", ".tsx", ".js", ".jsx", ".mjs", ".py"]
    )
    # Test, type-declaration and generated modules never enter a scan.
    skip_patterns: list[str] = field(
        default_factory=lambda: [
            r"\.(test|spec)\.[^/]+$",
            r"(^|/)test_[^/]+\.py$",
            r"_test\.py$",
            r"(^|/)(tests?|__tests__|__mocks__)/",
            r"\.d\.ts$",
            r"\.pyi$",
            r"(^|/)(generated|__generated__)/",
            r"\.(generated|gen)\.[^/]+$",
            r"_pb2(_grpc)?\.py$",
            r"\.min\.js$",
            r"integrations/supabase/types\.ts$",
        ]
    )
    preview_length: int = 200
    module_delay: float = 0.15
    stage_delay: float = 0.2
    # Overrides for the categorizer: {"core": ["/kernel/"], ...}
    category_markers: dict[str, list[str]] = field(default_factory=dict)


@dataclass
class DetectConfig:
    density_threshold: float = 0.30
    severe_density_threshold: float = 0.15
    low_density_min_lines: int = 50
    max_low_density: int = 3
    hotspot_min_lines: int = 300
    max_hotspots: int = 2
    refactored_exemptions: list[str] = field(default_factory=list)
    coverage_ratio: float = 0.08
    core_families: list[str] = field(default_factory=list)
    expected_domains: list[str] = field(default_factory=lambda: ["domainA", "domainB"])
    max_missing_coverage: int = 2


@dataclass
class HealConfig:
    """Self-heal settings read by every fix-apply decision."""

    enabled: bool = False
    auto_apply_threshold: float = 0.85

    def __post_init__(self) -> None:
        if not isinstance(self.enabled, bool):
            raise InvalidConfig(f"Self-heal enabled must be true or false, got {self.enabled!r}")
        self.auto_apply_threshold = validate_threshold(self.auto_apply_threshold)


@dataclass
class StoreConfig:
    encrypt_payloads: bool = False
    record_history: bool = True


@dataclass
class CodePulseConfig:
    """Complete CodePulse configuration."""

    exclude: list[str] = field(
        default_factory=lambda: [
            "venv/",
            ".venv/",
            "__pycache__/",
            ".codepulse/",
            "node_modules/",
            ".git/",
            "dist/",
            "build/",
        ]
    )
    scan: ScanConfig = field(default_factory=ScanConfig)
    detect: DetectConfig = field(default_factory=DetectConfig)
    heal: HealConfig = field(default_factory=HealConfig)
    store: StoreConfig = field(default_factory=StoreConfig)


def validate_threshold(value: float) -> float:
    """Return *value* if it is a legal auto-apply threshold, else raise InvalidConfig."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidConfig(f"Auto-apply threshold must be a number, got {value!r}")
    threshold = float(value)
    if not MIN_AUTO_APPLY_THRESHOLD <= threshold <= MAX_AUTO_APPLY_THRESHOLD:
        raise InvalidConfig(
            f"Auto-apply threshold {threshold} outside "
            f"[{MIN_AUTO_APPLY_THRESHOLD}, {MAX_AUTO_APPLY_THRESHOLD}]"
        )
    return threshold


def load_config(project_path: Path | None = None) -> CodePulseConfig:
    """Load configuration from codepulse.toml if present, otherwise return defaults."""
    config = CodePulseConfig()

    if project_path is None:
        project_path = Path.cwd()

    config_file = project_path / CONFIG_FILENAME
    if not config_file.exists():
        return config

    if tomllib is None:
        return config

    with open(config_file, "rb") as f:
        data = tomllib.load(f)

    if "general" in data:
        gen = data["general"]
        if "exclude" in gen:
            config.exclude = gen["exclude"]

    if "scan" in data:
        s = data["scan"]
        for attr in ("extensions", "skip_patterns", "preview_length", "module_delay", "stage_delay"):
            if attr in s:
                setattr(config.scan, attr, s[attr])
        if "categories" in s:
            config.scan.category_markers = {k: list(v) for k, v in s["categories"].items()}

    if "detect" in data:
        d = data["detect"]
        for attr in (
            "density_threshold",
            "severe_density_threshold",
            "low_density_min_lines",
            "max_low_density",
            "hotspot_min_lines",
            "max_hotspots",
            "refactored_exemptions",
            "coverage_ratio",
            "core_families",
            "expected_domains",
            "max_missing_coverage",
        ):
            if attr in d:
                setattr(config.detect, attr, d[attr])

    if "heal" in data:
        h = data["heal"]
        config.heal = HealConfig(
            enabled=h.get("enabled", config.heal.enabled),
            auto_apply_threshold=h.get("auto_apply_threshold", config.heal.auto_apply_threshold),
        )
        if "encrypt_payloads" in h:
            config.store.encrypt_payloads = h["encrypt_payloads"]

    if "history" in data:
        if "enabled" in data["history"]:
            config.store.record_history = data["history"]["enabled"]

    return config


def get_state_dir(project_path: Path | None = None) -> Path:
    """Get or create the .codepulse directory."""
    if project_path is None:
        project_path = Path.cwd()
    state_dir = project_path / STATE_DIRNAME
    state_dir.mkdir(exist_ok=True)
    return state_dir


def ensure_gitignore(project_path: Path | None = None) -> None:
    """Add .codepulse/ to .gitignore if not already present."""
    if project_path is None:
        project_path = Path.cwd()
    gitignore = project_path / ".gitignore"
    entry = f"{STATE_DIRNAME}/"

    if gitignore.exists():
        content = gitignore.read_text()
        if entry in content:
            return
        if not content.endswith("\n"):
            content += "\n"
        content += f"{entry}\n"
        gitignore.write_text(content)
    else:
        gitignore.write_text(f"{entry}\n")
