"""Models describing local model variants."""

from __future__ import annotations

from dataclasses import dataclass

__all__: list[str] = ["DEFAULT_MODEL_CATALOG", "ModelDescriptor"]


@dataclass
class ModelDescriptor:
    """Local model variant and its download state.

    Identity is ``id``; two descriptors with the same id compare equal regardless of state.

    Attributes:
        id (str): Stable model identifier (e.g. "gemma3n-e2b").
        display_name (str): Human-readable name.
        size_estimate (str): Approximate download size (e.g. "~1.5 GB").
        artifact_name (str): Repository-style name of the weights, used as the on-disk directory.
        downloaded (bool): Whether a complete set of artifacts exists on disk.
        downloading (bool): Whether a download is in progress.
        progress (float): Download progress in [0, 1].
    """

    id: str
    display_name: str
    size_estimate: str
    artifact_name: str
    downloaded: bool = False
    downloading: bool = False
    progress: float = 0.0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ModelDescriptor):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def mark_downloaded(self, *, downloaded: bool) -> None:
        self.downloaded = downloaded
        self.downloading = False
        self.progress = 1.0 if downloaded else 0.0

    def copy(self) -> ModelDescriptor:
        return ModelDescriptor(
            id=self.id,
            display_name=self.display_name,
            size_estimate=self.size_estimate,
            artifact_name=self.artifact_name,
            downloaded=self.downloaded,
            downloading=self.downloading,
            progress=self.progress,
        )


DEFAULT_MODEL_CATALOG: tuple[ModelDescriptor, ...] = (
    ModelDescriptor(
        id="gemma3n-e2b",
        display_name="Gemma 3n E2B IT LM 4-bit",
        size_estimate="~1.5 GB",
        artifact_name="mlx-community/gemma-3n-E2B-it-lm-4bit",
    ),
    ModelDescriptor(
        id="gemma3n-e4b",
        display_name="Gemma 3n E4B IT LM 4-bit",
        size_estimate="~2.5 GB",
        artifact_name="mlx-community/gemma-3n-E4B-it-lm-4bit",
    ),
)
