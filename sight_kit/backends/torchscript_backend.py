from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import numpy as np

from ..engine import RawOutput, raw_output_from_array
from ..preprocess import image_to_blob


PathLike = Union[str, Path]


@dataclass(frozen=True)
class TorchScriptBackendConfig:
    """
    Configuration for TorchScript inference.

    - device: "cpu" or "cuda" (if available)
    - half: cast input to float16 (only if the model expects it)
    - output_index: if the model returns multiple outputs, select this index
    """

    device: str = "cpu"
    half: bool = False
    output_index: int = 0
    num_threads: Optional[int] = None


class TorchScriptBackend:
    """
    TorchScript inference engine using `torch.jit.load`; needs no model class code.
    """

    def __init__(self, model_path: PathLike, cfg: TorchScriptBackendConfig = TorchScriptBackendConfig()):
        try:
            import torch  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError("torch is required for the TorchScript backend. Install with `pip install torch`.") from e

        self._torch = torch
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        self.device = torch.device(cfg.device)
        self.half = cfg.half
        self.output_index = cfg.output_index
        if cfg.num_threads is not None:
            torch.set_num_threads(int(cfg.num_threads))

        model = torch.jit.load(str(self.model_path), map_location=self.device)
        model.eval()
        self.model = model

    def infer(self, pixels: np.ndarray, width: int, height: int) -> RawOutput:
        if pixels.shape[:2] != (height, width):
            raise ValueError(f"Pixel buffer shape {pixels.shape[:2]} does not match {height}x{width}")
        torch = self._torch
        x = torch.as_tensor(image_to_blob(pixels), device=self.device)
        if self.half:
            x = x.half()
        else:
            x = x.float()
        x = x.contiguous()

        with torch.no_grad():
            y = self.model(x)

        if isinstance(y, (tuple, list)):
            y = y[self.output_index]

        if hasattr(y, "detach"):
            y = y.detach()
        return raw_output_from_array(y.float().to("cpu").numpy())
