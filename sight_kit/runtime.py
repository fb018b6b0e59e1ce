from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple, Union

import numpy as np

from .decoder import TensorDecoder
from .engine import InferenceEngine, RawOutput
from .errors import EmptyLabelTable, MalformedOutput, ModelUnavailable
from .filtering import CandidateFilter, ClassThresholds, FilterConfig
from .labels import load_labels
from .nms import NMSConfig, suppress
from .preprocess import stretch_resize
from .types import Detection


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def find_project_root(
    start: Optional[PathLike] = None,
    markers: Sequence[str] = ("pyproject.toml", "setup.py", ".git", "requirements.txt"),
) -> Path:
    """
    Best-effort project root discovery, so `models/` and `labels.txt` can be
    referenced relative to the repository rather than the working directory.
    """

    p = Path(start) if start is not None else Path.cwd()
    p = p.resolve()

    # If a file is provided, start from its directory.
    if p.is_file():
        p = p.parent

    for parent in (p, *p.parents):
        for m in markers:
            if (parent / m).exists():
                return parent
    return p


def resolve_path(path: PathLike, root: Optional[PathLike] = "auto") -> Path:
    """
    Resolve `path` to an absolute Path.

    - Absolute paths are returned as-is.
    - Relative paths are resolved against `root` if provided, the project root otherwise.
    """

    p = Path(path)
    if p.is_absolute():
        return p

    if root == "auto" or root is None:
        base = find_project_root()
    else:
        base = Path(root).resolve()

    return (base / p).resolve()


@dataclass(frozen=True)
class PreprocessResult:
    pixels: np.ndarray
    orig_size: Tuple[int, int]
    ratio: Tuple[float, float]


class DetectionPipeline:
    """
    One frame in, filtered detections out: resize -> inference -> decode ->
    class filter -> NMS.

    `detect` never raises. Any failure (missing model, empty label table, bad
    output shape, engine error) yields an empty list for that frame and is kept
    in `last_error` for diagnosis. The pipeline is not reentrant; run it from a
    single worker (see `SingleFlightRunner`).
    """

    def __init__(
        self,
        engine: Optional[InferenceEngine],
        labels: Sequence[str],
        *,
        input_size: int = 640,
        thresholds: Optional[ClassThresholds] = None,
        nms_cfg: NMSConfig = NMSConfig(),
        normalized_coords: bool = False,
        bgr_input: bool = False,
        load_error: Optional[str] = None,
    ):
        self.engine = engine
        self.labels: Tuple[str, ...] = tuple(labels)
        self.input_size = int(input_size)
        self.nms_cfg = nms_cfg
        self.bgr_input = bgr_input
        self.load_error = load_error
        self.candidates = CandidateFilter(
            self.labels,
            thresholds,
            FilterConfig(input_size=self.input_size, normalized_coords=normalized_coords),
        )
        self.last_error: Optional[Exception] = None
        self._last_failure_key: Optional[Tuple[type, str]] = None

        if engine is None:
            logger.error("Detection pipeline created without an inference engine: %s", load_error or "no engine")
        if not self.labels:
            logger.warning("Detection pipeline created with an empty label table; no detections will be produced")

    @property
    def ready(self) -> bool:
        return self.engine is not None and bool(self.labels)

    def preprocess(self, image: np.ndarray) -> PreprocessResult:
        if image is None or not hasattr(image, "shape"):
            raise TypeError("image must be a NumPy array (H, W, 3).")
        if image.ndim != 3 or image.shape[2] != 3:
            raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image, 'shape', None)}")

        orig_h, orig_w = image.shape[:2]
        resized, ratio = stretch_resize(image, self.input_size)
        if self.bgr_input:
            resized = np.ascontiguousarray(resized[:, :, ::-1])
        return PreprocessResult(pixels=resized, orig_size=(orig_w, orig_h), ratio=ratio)

    def postprocess(self, output: Tuple[Any, int, int], orig_size: Tuple[int, int]) -> List[Detection]:
        """
        Decode, filter and suppress one raw model output.

        Args:
            output: RawOutput or plain (buffer, N, C) tuple
            orig_size: (width, height) of the image before resizing
        """

        if not self.labels:
            raise EmptyLabelTable("Label table is empty")
        # Engines may hand back a plain (buffer, N, C) tuple.
        output = RawOutput(*output)
        if output.num_slots <= 0:
            raise MalformedOutput(f"Model declared {output.num_slots} candidate slots")

        decoder = TensorDecoder(output.buffer, output.num_slots, output.num_classes)
        candidates = self.candidates.filter(decoder, orig_size)
        kept = suppress(candidates, self.nms_cfg)
        logger.debug("Raw: %d, After NMS: %d", len(candidates), len(kept))
        return kept

    def _run(self, image: np.ndarray) -> List[Detection]:
        if self.engine is None:
            raise ModelUnavailable(self.load_error or "Inference engine is not initialized")
        if not self.labels:
            raise EmptyLabelTable("Label table is empty")

        prep = self.preprocess(image)
        output = self.engine.infer(prep.pixels, self.input_size, self.input_size)
        return self.postprocess(output, prep.orig_size)

    def detect(self, image: np.ndarray) -> List[Detection]:
        try:
            detections = self._run(image)
        except Exception as exc:
            self._report_failure(exc)
            return []

        if self.last_error is not None:
            logger.info("Detection recovered after: %s", self.last_error)
        self.last_error = None
        self._last_failure_key = None
        return detections

    __call__ = detect

    def _report_failure(self, exc: Exception) -> None:
        self.last_error = exc
        key = (type(exc), str(exc))
        if key == self._last_failure_key:
            logger.debug("Detection failed again: %s: %s", type(exc).__name__, exc)
            return
        self._last_failure_key = key
        logger.warning("Detection failed for this frame: %s: %s", type(exc).__name__, exc, exc_info=exc)


def _infer_backend(model_path: Path) -> str:
    suffix = model_path.suffix.lower()
    if suffix == ".onnx":
        return "onnxruntime"
    if suffix in {".torchscript", ".ts", ".pt"}:
        return "torchscript"
    raise ValueError(f"Could not infer backend from extension '{suffix}'. Pass backend=... explicitly.")


def load_engine(
    model_path: PathLike,
    *,
    backend: Optional[str] = None,
    onnx_providers: Optional[Sequence[str]] = None,
    torch_device: str = "cpu",
) -> InferenceEngine:
    resolved = Path(model_path)
    chosen = (backend or _infer_backend(resolved)).lower()

    if chosen == "onnxruntime":
        from .backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

        return OnnxRuntimeBackend(resolved, OnnxRuntimeBackendConfig(providers=onnx_providers))

    if chosen == "torchscript":
        from .backends.torchscript_backend import TorchScriptBackend, TorchScriptBackendConfig

        return TorchScriptBackend(resolved, TorchScriptBackendConfig(device=torch_device))

    raise ValueError(f"Unsupported backend: {backend!r}")


def load_pipeline(
    model_path: PathLike,
    labels_path: PathLike,
    *,
    backend: Optional[str] = None,
    root: Optional[PathLike] = "auto",
    input_size: int = 640,
    thresholds: Optional[ClassThresholds] = None,
    nms_cfg: NMSConfig = NMSConfig(),
    normalized_coords: bool = False,
    bgr_input: bool = False,
    onnx_providers: Optional[Sequence[str]] = None,
    torch_device: str = "cpu",
) -> DetectionPipeline:
    """
    Build a pipeline from a model file and a label file.

    Loading never raises: a model that cannot be loaded leaves the pipeline
    without an engine (every frame reports ModelUnavailable) and an unreadable
    label file leaves it with an empty label table.

    Args:
        model_path: .onnx or TorchScript file; relative paths resolve against the project root by default
        labels_path: labels.txt (one per line) or metadata.yaml (`names:` block)
        backend: "onnxruntime", "torchscript" or None to infer from the extension
    """

    resolved_model = resolve_path(model_path, root=root)
    resolved_labels = resolve_path(labels_path, root=root)

    try:
        labels = load_labels(resolved_labels)
    except (OSError, ValueError) as exc:
        logger.error("Error loading labels from %s: %s", resolved_labels, exc)
        labels = []

    engine: Optional[InferenceEngine] = None
    load_error: Optional[str] = None
    try:
        engine = load_engine(
            resolved_model,
            backend=backend,
            onnx_providers=onnx_providers,
            torch_device=torch_device,
        )
    except Exception as exc:
        load_error = f"Error loading model {resolved_model}: {exc}"
    else:
        logger.info("Model loaded: %s with %d classes", resolved_model, len(labels))

    return DetectionPipeline(
        engine,
        labels,
        input_size=input_size,
        thresholds=thresholds,
        nms_cfg=nms_cfg,
        normalized_coords=normalized_coords,
        bgr_input=bgr_input,
        load_error=load_error,
    )
