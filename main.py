import argparse

from config.logging_config import logger
from ffnet.pipeline import ModelPipeline, load_config


def main():
    parser = argparse.ArgumentParser(description="Train a feed-forward network from a YAML config.")
    parser.add_argument('--config', default='config/regression.yaml', help="Path to the YAML config")
    parser.add_argument('--epochs', type=int, default=None, help="Override the configured number of epochs")
    parser.add_argument('--plot', default=None, help="Save the training curves to this file")
    args = parser.parse_args()

    config = load_config(args.config)
    pipeline = ModelPipeline(config, model_name=f"{config['task']} network")
    history = pipeline.train_and_evaluate(epochs=args.epochs)

    if args.plot:
        pipeline.plot_graphs(history, save_path=args.plot)

    logger.info('finished!')


if __name__ == '__main__':
    main()
