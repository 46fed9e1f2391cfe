"""Neural pattern classifier.

Small 1-D convolutional encoder over a normalised ``(price, volume)`` window
with one output row per pattern type: a presence logit followed by three
direction logits (up, down, neutral).
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
import torch
import torch.nn as nn

from riskscope.patterns.models import DIRECTIONS, PATTERN_TYPES, Pattern

N_CHANNELS = 2
N_TYPES = len(PATTERN_TYPES)
N_OUTPUTS = 1 + len(DIRECTIONS)


class PatternModelError(RuntimeError):
    """Raised when classifier output cannot be decoded into patterns."""


# ── Network ──────────────────────────────────────────────────────────────


class PatternNet(nn.Module):
    """Conv encoder: 2 → 16 → 32 channels, pooled, then 32 → 64 → 5×4.

    Adaptive pooling makes the network length-agnostic, so windows shorter
    than the configured size still run.
    """

    def __init__(self, hidden_dim: int = 64) -> None:
        super().__init__()

        self.encoder = nn.Sequential(
            nn.Conv1d(N_CHANNELS, 16, kernel_size=5, padding=2),
            nn.LeakyReLU(0.01),
            nn.Conv1d(16, 32, kernel_size=5, padding=2),
            nn.LeakyReLU(0.01),
            nn.AdaptiveAvgPool1d(1),
        )
        self.head = nn.Sequential(
            nn.Flatten(),
            nn.Linear(32, hidden_dim),
            nn.LayerNorm(hidden_dim),
            nn.LeakyReLU(0.01),
            nn.Linear(hidden_dim, N_TYPES * N_OUTPUTS),
        )

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        # (batch, length, channels) → (batch, channels, length)
        features = self.encoder(x.transpose(1, 2))
        return self.head(features).view(-1, N_TYPES, N_OUTPUTS)


def count_parameters(model: nn.Module) -> int:
    """Count total trainable parameters."""
    return sum(p.numel() for p in model.parameters() if p.requires_grad)


def load_pattern_model(model_path: str | Path) -> PatternNet:
    """Load a ``PatternNet`` state dict from *model_path* in eval mode.

    Raises ``FileNotFoundError`` if the file is missing; torch raises on a
    corrupt or mismatched state dict.
    """
    path = Path(model_path)
    if not path.is_file():
        raise FileNotFoundError(f"Pattern model not found: {path}")
    state = torch.load(path, map_location="cpu", weights_only=True)
    model = PatternNet()
    model.load_state_dict(state)
    model.eval()
    return model


def save_pattern_model(model: PatternNet, model_path: str | Path) -> None:
    """Write *model*'s state dict to *model_path*."""
    path = Path(model_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    torch.save(model.state_dict(), path)


def predict(model: nn.Module, window: np.ndarray) -> np.ndarray:
    """Run *model* on one normalised window of shape ``(length, 2)``."""
    x = torch.as_tensor(window, dtype=torch.float32).unsqueeze(0)
    with torch.no_grad():
        out = model(x)
    return out.cpu().numpy()


# ── Decoding ─────────────────────────────────────────────────────────────


def decode_output(
    raw: np.ndarray,
    *,
    threshold: float,
    start_index: int,
    end_index: int,
    support: float | None = None,
    resistance: float | None = None,
) -> list[Pattern]:
    """Translate classifier output into ``Pattern`` entries.

    Args:
        raw: Array of shape ``(1, 5, 4)`` or ``(5, 4)``.
        threshold: Minimum sigmoid confidence to report a pattern.
        start_index: First series offset covered by the window.
        end_index: Last series offset covered by the window.
        support: Level attached to every emitted pattern.
        resistance: Level attached to every emitted pattern.

    Raises:
        PatternModelError: If *raw* has the wrong shape or non-finite values.
    """
    arr = np.asarray(raw, dtype=np.float64)
    if arr.shape == (1, N_TYPES, N_OUTPUTS):
        arr = arr[0]
    if arr.shape != (N_TYPES, N_OUTPUTS):
        raise PatternModelError(
            f"Expected output shape (1, {N_TYPES}, {N_OUTPUTS}), got {np.shape(raw)}"
        )
    if not np.isfinite(arr).all():
        raise PatternModelError("Model output contains non-finite values")

    confidences = 1.0 / (1.0 + np.exp(-arr[:, 0]))
    patterns: list[Pattern] = []
    for i, pattern_type in enumerate(PATTERN_TYPES):
        confidence = float(confidences[i])
        if confidence < threshold:
            continue
        direction = DIRECTIONS[int(np.argmax(arr[i, 1:]))]
        patterns.append(
            Pattern(
                type=pattern_type,
                confidence=round(confidence, 4),
                start_index=start_index,
                end_index=end_index,
                predicted_direction=direction,
                support_level=support,
                resistance_level=resistance,
            )
        )
    return patterns
