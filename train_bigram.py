from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Iterable, Optional

import numpy as np
import torch  # type: ignore
import torch.nn as nn  # type: ignore
import torch.nn.functional as F  # type: ignore

from bigram_model import DEFAULT_ALPHA, BigramModel, train
from errors import InvalidTrainConfigError

logger = logging.getLogger(__name__)


def set_seed(seed: int) -> None:
    random.seed(seed)
    np.random.seed(seed)
    torch.manual_seed(seed)


def get_device(preferred: Optional[str] = None) -> torch.device:
    """Resolve ``preferred`` ("cpu", "cuda", "mps"); None or "auto" picks the best available."""
    if preferred not in (None, "auto"):
        return torch.device(preferred)
    if torch.cuda.is_available():
        return torch.device("cuda")
    mps = getattr(torch.backends, "mps", None)
    if mps is not None and mps.is_available():
        return torch.device("mps")
    return torch.device("cpu")


@dataclass
class TrainConfig:
    steps: int = 300
    batch_size: int = 8192
    lr: float = 3e-2
    alpha: float = DEFAULT_ALPHA
    seed: int = 42


class TorchBigramLM(nn.Module):
    def __init__(self, vocab_size: int, init_logits: Optional[torch.Tensor] = None) -> None:
        super().__init__()
        # logits for next-token given current token id: [V, V]
        if init_logits is None:
            self.logits_table = nn.Parameter(torch.zeros((vocab_size, vocab_size)))
            nn.init.normal_(self.logits_table, mean=0.0, std=0.01)
        else:
            self.logits_table = nn.Parameter(init_logits.clone().float())

    def forward(self, x_ids: torch.Tensor) -> torch.Tensor:
        # x_ids: [B] ints -> output logits [B, V]
        return self.logits_table[x_ids]

    @torch.no_grad()
    def probabilities(self) -> np.ndarray:
        """Row-wise softmax of the logits as a float64 [V, V] array."""
        logits = self.logits_table.detach().cpu().double()
        return F.softmax(logits, dim=-1).numpy()


def fit_torch_bigram(
    text: str,
    cfg: Optional[TrainConfig] = None,
    alphabet: Optional[Iterable[str]] = None,
    device: Optional[torch.device] = None,
) -> BigramModel:
    """Fit the bigram table by gradient descent on next-character cross-entropy.

    Logits start at the log of the alpha-smoothed count table, so zero steps
    reproduce ``train(text, cfg.alpha)``. The result is an ordinary
    BigramModel usable by generation, scoring and snapshots.
    """
    cfg = cfg or TrainConfig()
    if cfg.steps < 0:
        raise InvalidTrainConfigError("steps must be >= 0")
    if cfg.batch_size <= 0:
        raise InvalidTrainConfigError("batch_size must be positive")
    if cfg.lr <= 0:
        raise InvalidTrainConfigError("lr must be positive")

    base = train(text, alpha=cfg.alpha, alphabet=alphabet)
    device = device or get_device()
    # private generator: fitting leaves the global RNGs untouched
    generator = torch.Generator(device=device).manual_seed(cfg.seed)

    init_logits = torch.from_numpy(np.log(base.table))
    model = TorchBigramLM(base.vocab_size, init_logits=init_logits).to(device)
    optimizer = torch.optim.Adam(model.parameters(), lr=cfg.lr)

    # Build long tensors of pairs
    token_ids = np.array(base.tokenizer.encode(text), dtype=np.int64)
    x_all = torch.tensor(token_ids[:-1], dtype=torch.long, device=device)
    y_all = torch.tensor(token_ids[1:], dtype=torch.long, device=device)
    N = x_all.shape[0]
    full_batch = cfg.batch_size >= N

    logger.info("fitting torch bigram: device=%s pairs=%d vocab=%d", device, N, base.vocab_size)
    for step in range(1, cfg.steps + 1):
        if full_batch:
            xb, yb = x_all, y_all
        else:
            idx = torch.randint(0, N, (cfg.batch_size,), device=device, generator=generator)
            xb, yb = x_all[idx], y_all[idx]
        loss = F.cross_entropy(model(xb), yb)
        optimizer.zero_grad(set_to_none=True)
        loss.backward()
        optimizer.step()

        if step % max(1, cfg.steps // 10) == 0 or step == 1:
            logger.info("step %d\tloss %.4f", step, loss.item())

    return BigramModel(
        vocab=base.vocab,
        table=model.probabilities(),
        alpha=cfg.alpha,
        total_transitions=base.total_transitions,
        corpus=text,
    )
