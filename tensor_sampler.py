import numbers

import torch
import torch.nn as nn

from alias_sampler import check_table


def select_device():
    if torch.backends.mps.is_available():
        return torch.device('mps')
    elif torch.cuda.is_available():
        return torch.device('cuda')
    return torch.device('cpu')


class TensorAliasSampler(nn.Module):
    """Alias method sampler on a torch device
    """
    def __init__(self, table, device=None):
        """
        Input:
        ------
        table: An AliasTable from alias_sampler.build. Quantized tables are
            rescaled to [0, 1] thresholds.
        device: The torch device to hold the table on. Defaults to the
            first of mps, cuda and cpu that is available.
        """
        super(TensorAliasSampler, self).__init__()
        self.n_categories = check_table(table)
        if device is None:
            device = select_device()
        self.register_buffer(
            "prob",
            torch.tensor(table.thresholds(), dtype=torch.float32,
                         device=device),
            )
        self.register_buffer(
            "alias",
            torch.tensor(table.alias.copy(), dtype=torch.long, device=device),
            )

    def forward(self, n, generator=None):
        """
        Input:
        ------
        n: The number of draws
        generator: Optional torch.Generator, which must live on the same
            device as the buffers

        Returns a torch.long tensor of shape [n]
        """
        if isinstance(n, bool) or not isinstance(n, numbers.Integral):
            raise ValueError(f"Sample count must be an integer. Got {n!r}.")
        n = int(n)
        if n < 0:
            raise ValueError(f"Sample count must be non-negative. Got {n}.")
        device = self.prob.device
        slot = torch.randint(
            0, self.n_categories, (n,),
            generator=generator,
            device=device,
            ) # n
        coin = torch.rand(n, generator=generator, device=device) # n
        return torch.where(coin < self.prob[slot], slot, self.alias[slot])
