import argparse
from pathlib import Path
from time import time
from pong_regression.config import Config, load_config, get_experiment_dirs
from pong_regression.experiment import run_experiment
from pong_regression.utils import setup_logger

if __name__ == "__main__":
    """
    Example usage:
python train.py --config configs/pong.yaml --data_dir ./data --exp_name 001-all_models
    """
    t_start = time()

    # Config
    parser = argparse.ArgumentParser(description="Train the pong regression models on the CSV data.")
    parser.add_argument("-c", "--config", type=str, default=None, help="Path to the configuration file")
    parser.add_argument("--exp_name", type=str, default=None, help="Optional experiment name to override the one in config")
    parser.add_argument("--data_dir", type=str, default=None, help="Optional directory holding the four CSV files")
    args = parser.parse_args()

    cfg = load_config(args.config) if args.config else Config()
    if args.exp_name is not None:
        cfg.logging.experiment_name = args.exp_name
    if args.data_dir is not None:
        cfg.data.data_dir = args.data_dir

    _, _, logs_dir, hparams_dir = get_experiment_dirs(cfg.logging, create=True, subdirs=("logs", "hparams"))
    logger = setup_logger(log_file=str(Path(logs_dir) / "train.log"), level=cfg.logging.level)
    print("\nStarting training with the following configuration:")
    cfg.print()

    # Save the configuration used for training
    config_snapshot_path = Path(hparams_dir) / "config.yaml"
    with open(config_snapshot_path, "w") as f:
        f.write(cfg.to_yaml())
    logger.info(f"Configuration saved to: {config_snapshot_path}")

    # Run the experiment
    outcome = run_experiment(cfg)

    print(f"\nBaseline loss: {outcome['baseline']:.4f}")
    for name, result in outcome["results"].items():
        print(f"\n=== {name} ===\n{result.summary()}")

    t_end = time()
    print(f"\nTraining completed in {t_end - t_start:.2f} seconds.")
