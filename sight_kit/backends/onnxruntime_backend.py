from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Union

import numpy as np

from ..engine import RawOutput, raw_output_from_array
from ..preprocess import image_to_blob


PathLike = Union[str, Path]


@dataclass(frozen=True)
class OnnxRuntimeBackendConfig:
    """
    Configuration for ONNX Runtime inference.

    - providers: ORT execution providers (e.g., ["CUDAExecutionProvider", "CPUExecutionProvider"])
    - input_name/output_name: override auto-selected I/O names if needed
    - channels_first: feed NCHW (True, typical YOLO export) or NHWC blobs
    - num_threads: intra-op thread count, None keeps the ORT default
    """

    providers: Optional[Sequence[str]] = None
    input_name: Optional[str] = None
    output_name: Optional[str] = None
    channels_first: bool = True
    num_threads: Optional[int] = 4


class OnnxRuntimeBackend:
    """
    ONNX Runtime inference engine.

    Takes the resized RGB frame, normalizes it into a float32 blob and returns the
    primary output as a flat channel-major RawOutput.
    """

    def __init__(self, model_path: PathLike, cfg: OnnxRuntimeBackendConfig = OnnxRuntimeBackendConfig()):
        try:
            import onnxruntime as ort  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "onnxruntime is required for the ONNX backend. Install it with `pip install onnxruntime` "
                "(or `onnxruntime-gpu`)."
            ) from e

        self._ort = ort
        self.cfg = cfg
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        sess_opts = ort.SessionOptions()
        if cfg.num_threads is not None:
            sess_opts.intra_op_num_threads = int(cfg.num_threads)
        providers = list(cfg.providers) if cfg.providers is not None else None
        self.session = ort.InferenceSession(str(self.model_path), sess_options=sess_opts, providers=providers)

        self.input_name = cfg.input_name or self.session.get_inputs()[0].name
        # If output_name not provided, pick first output.
        self.output_name = cfg.output_name or self.session.get_outputs()[0].name

    @property
    def providers_in_use(self) -> Sequence[str]:
        # ORT returns providers in priority order for this session.
        return tuple(self.session.get_providers())

    def infer(self, pixels: np.ndarray, width: int, height: int, extra_inputs: Optional[Dict[str, Any]] = None) -> RawOutput:
        if pixels.shape[:2] != (height, width):
            raise ValueError(f"Pixel buffer shape {pixels.shape[:2]} does not match {height}x{width}")
        blob = image_to_blob(pixels, channels_first=self.cfg.channels_first)
        inputs: Dict[str, Any] = {self.input_name: blob}
        if extra_inputs:
            inputs.update(extra_inputs)
        outputs = self.session.run([self.output_name], inputs)
        return raw_output_from_array(outputs[0])
