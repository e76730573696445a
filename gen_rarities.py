import argparse
import json
import os
import sys
from datetime import datetime

import numpy as np
import torch

from alias_sampler import build, sample
from tensor_sampler import TensorAliasSampler, select_device

BACKENDS = ("numpy", "torch")


def get_logger(log_file_path, print_to_console=True):
    """
    Returns a logger that writes JSON-formatted logs to file (1 per line).

    Args:
        log_file_path (str): File to append logs to.
        print_to_console (bool): If True, also prints log entries to stdout.

    Returns:
        log_fn (callable): log_fn(message_dict: dict)
    """
    log_dir = os.path.dirname(log_file_path)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    def log_fn(message_dict):
        message_dict["timestamp"] = datetime.now().isoformat()
        line = json.dumps(message_dict)
        with open(log_file_path, "a") as f:
            f.write(line + "\n")
        if print_to_console:
            print(line)

    return log_fn


def load_config(path):
    """
    Reads a rarity config from a JSON file. Only "weights" is required;
    "tiers", "count", "quantize", "legacy" and "seed" are optional.
    """
    with open(path) as f:
        config = json.load(f)
    if not isinstance(config, dict) or "weights" not in config:
        raise ValueError(f"Config {path} has no 'weights' entry.")
    return config


def save_results(results, out_path):
    out_dir = os.path.dirname(out_path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    with open(out_path, "w") as f:
        json.dump(results, f, indent=2)


def gen_rarities(
    weights,
    count,
    tiers=None,
    quantize=False,
    legacy=False,
    seed=None,
    backend="numpy",
    device=None,
    logger=None,
    ):
    """
    Assigns a rarity category to each of `count` tokens.

    Args:
        weights (sequence): Relative weight of every rarity category.
        count (int): Number of tokens to assign.
        tiers (list of str): Optional name per category.
        quantize (bool): Build the table on the 0-100 integer scale.
        legacy (bool): Use the historical seed-coupled draw (numpy only).
        seed (int): Seed for the random generator.
        backend (str): "numpy" or "torch".
        device: torch device for the torch backend.
        logger (callable): Optional log_fn from get_logger.

    Returns:
        dict with the table, the samples, per-category counts and, if
        tiers were given, the tier name of every sample.
    """
    if backend not in BACKENDS:
        raise ValueError(f"Unknown backend {backend!r}. Use one of {BACKENDS}.")
    if legacy and backend != "numpy":
        raise ValueError("The legacy draw is only available on numpy.")

    table = build(weights, quantize=quantize)
    N = len(table)
    if tiers is not None and len(tiers) != N:
        raise ValueError(
            f"Got {len(tiers)} tier names for {N} weights."
            )

    if backend == "numpy":
        samples = sample(table, count, rng=seed, legacy=legacy)
    else:
        if device is None:
            device = select_device()
        sampler = TensorAliasSampler(table, device=device)
        generator = None
        if seed is not None:
            generator = torch.Generator(device=device)
            generator.manual_seed(int(seed))
        samples = sampler(count, generator=generator).cpu().numpy()

    counts = np.bincount(samples, minlength=N)
    results = {
        "probabilities": table.probability.tolist(),
        "aliases": table.alias.tolist(),
        "samples": [int(s) for s in samples],
        "counts": [int(c) for c in counts],
        "tiers": [tiers[s] for s in samples] if tiers is not None else None,
    }
    if logger is not None:
        logger({
            "event": "gen_rarities",
            "backend": backend,
            "count": int(count),
            "quantize": bool(quantize),
            "legacy": bool(legacy),
            "counts": results["counts"],
        })
    return results


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Assign weighted rarity tiers with the alias method."
        )
    src = parser.add_mutually_exclusive_group(required=True)
    src.add_argument("--config", help="JSON file with weights and options")
    src.add_argument("--weights", nargs="+",
                     help="Relative weight of every category")
    parser.add_argument("--tiers", nargs="+", help="Name of every category")
    parser.add_argument("--count", type=int, default=None,
                        help="Number of tokens to assign (default 100)")
    parser.add_argument("--quantize", action="store_true",
                        help="Floor probabilities onto a 0-100 scale")
    parser.add_argument("--legacy", action="store_true",
                        help="Historical seed-coupled draw")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--backend", choices=BACKENDS, default="numpy")
    parser.add_argument("--out", help="Write results as JSON to this path")
    parser.add_argument("--log-file", default=None,
                        help="JSON-lines log (default logs/rarities_<time>.json)")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    cur_time = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = args.log_file or f"logs/rarities_{cur_time}.json"
    logger = get_logger(log_file, print_to_console=False)

    try:
        config = load_config(args.config) if args.config \
            else {"weights": args.weights}
        if args.tiers is not None:
            config["tiers"] = args.tiers
        if args.count is not None:
            config["count"] = args.count
        if args.seed is not None:
            config["seed"] = args.seed
        results = gen_rarities(
            config["weights"],
            config.get("count", 100),
            tiers=config.get("tiers"),
            quantize=args.quantize or config.get("quantize", False),
            legacy=args.legacy or config.get("legacy", False),
            seed=config.get("seed"),
            backend=args.backend,
            logger=logger,
        )
    except (OSError, ValueError) as e:
        logger({"event": "error", "error": str(e)})
        print(f"error: {e}", file=sys.stderr)
        return 1

    if args.out:
        save_results(results, args.out)
    print(" ".join(str(c) for c in results["counts"]))
    return 0


if __name__ == "__main__":
    sys.exit(main())
