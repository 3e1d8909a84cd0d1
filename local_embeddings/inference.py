"""
Inference engine interface and a local ``torch`` implementation.

An engine turns the model inputs of one partition into one hidden-state
vector per token position.  ``TorchInferenceEngine`` wraps a Hugging Face
``AutoModel`` and can run on CPU or GPU.  It holds no per-call state, so a
single instance can be shared by all batch worker threads.

Example usage:

    from local_embeddings.inference import TorchInferenceEngine

    engine = TorchInferenceEngine.from_pretrained("sentence-transformers/all-MiniLM-L6-v2")
    states = engine.run({"input_ids": [[101, 7592, 102]], "attention_mask": [[1, 1, 1]]})
    print(states.shape)  # (3, 384)

This module does not download any models by itself beyond what
``transformers`` does on first use.  In an offline environment pre-download
the weights and pass the local directory as ``model_name``.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Dict, Mapping, Optional, Protocol, Set

import numpy as np
import torch
from transformers import AutoModel

logger = logging.getLogger(__name__)

# Inputs a bi-encoder may accept; anything else the forward pass takes is
# left at its default.
KNOWN_INPUT_NAMES = ("input_ids", "attention_mask", "token_type_ids")


class InferenceEngine(Protocol):
    def declared_input_names(self) -> Set[str]:
        ...

    def run(self, inputs: Mapping[str, Any]) -> np.ndarray:
        ...


class TorchInferenceEngine:
    """Runs a Hugging Face encoder and returns its last hidden state.

    Parameters
    ----------
    model : transformers.PreTrainedModel
        A loaded encoder model.  Use :meth:`from_pretrained` to load one by
        name.
    device : str, optional
        Device on which to run the model (e.g. ``"cuda"`` or ``"cpu"``).
        If not provided the device is selected automatically based on
        availability.
    """

    def __init__(self, model, device: Optional[str] = None) -> None:
        if device is None:
            device = "cuda" if torch.cuda.is_available() else "cpu"
        self.device = device
        self.model = model
        self.model.to(self.device)
        self.model.eval()
        self._input_names = _forward_input_names(model)

    @classmethod
    def from_pretrained(
        cls,
        model_name: str,
        device: Optional[str] = None,
        torch_dtype: Optional[torch.dtype] = None,
        trust_remote_code: bool = False,
    ) -> "TorchInferenceEngine":
        model_kwargs: Dict[str, Any] = {"trust_remote_code": trust_remote_code}
        if torch_dtype is not None:
            model_kwargs["torch_dtype"] = torch_dtype
        logger.info(f"Loading encoder model {model_name}")
        model = AutoModel.from_pretrained(model_name, **model_kwargs)
        return cls(model, device=device)

    def declared_input_names(self) -> Set[str]:
        return set(self._input_names)

    @property
    def hidden_size(self) -> Optional[int]:
        config = getattr(self.model, "config", None)
        return getattr(config, "hidden_size", None)

    @property
    def max_position_embeddings(self) -> Optional[int]:
        config = getattr(self.model, "config", None)
        return getattr(config, "max_position_embeddings", None)

    def run(self, inputs: Mapping[str, Any]) -> np.ndarray:
        """Return the ``[tokens, hidden]`` states for a single sequence."""
        tensors = {
            name: torch.as_tensor(value, dtype=torch.long, device=self.device)
            for name, value in inputs.items()
            if name in self._input_names
        }
        with torch.no_grad():
            outputs = self.model(**tensors)
        hidden = outputs[0] if isinstance(outputs, tuple) else outputs.last_hidden_state
        return hidden[0].float().cpu().numpy()


def _forward_input_names(model) -> Set[str]:
    try:
        params = inspect.signature(model.forward).parameters
    except (TypeError, ValueError):
        return {"input_ids", "attention_mask"}
    return {name for name in KNOWN_INPUT_NAMES if name in params}
