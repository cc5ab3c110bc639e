import matplotlib.pyplot as plt
import numpy as np
import yaml
from sklearn.metrics import classification_report
from typing import Any, Dict, List

from config.logging_config import logger
from .activations import ACTIVATIONS
from .data import DataPipeline
from .gradients import get_gradient_provider
from .losses import get_loss
from .metrics import accuracy, classify
from .network import Network
from .optimizers import get_optimizer
from .training import Trainer


DEFAULT_CONFIG = {
    'task': 'regression',
    'random_state': 42,
    'layer_sizes': [1, 5, 1],
    'activ_fn': 'sigmoid',
    'activ_final': None,
    'softmax': False,
    'initializer': 'xavier_uniform',
    'loss_fn': 'mse',
    'optimizer': 'adam',
    'learning_rate': 0.001,
    'gradients': 'backprop',
    'epochs': 200,
    'train_batch_size': 8,
    'drop_last': False,
    'log_every': 25,
    'evaluate_every': 2,
    'train_size': 0.8,
    'num_samples': 10000,
    'num_classes': 10,
    'data_path': None,
    'target': 'label',
    'pixel_scale': 255.0
}


def load_config(path) -> Dict[str, Any]:
    """
    Reads a YAML config file and fills in defaults for missing keys
    """
    with open(path) as f:
        loaded = yaml.safe_load(f) or {}

    config = dict(DEFAULT_CONFIG)
    config.update(loaded)
    return config


class ModelPipeline:
    """
    End-to-end training and evaluation of a feed-forward network from a config dict.

    'regression' approximates f(x) = exp(x) - x^3 with an MSE loss;
    'classification' recognises handwritten digits with softmax outputs and
    cross-entropy, tracking train and test accuracy.
    """
    def __init__(self, config, model_name, auto_setup=True) -> None:
        """
        Initialize pipeline with configuration
        ---
        Args:
            config (Dict[str, Any]): Configuration dictionary
            model_name (str): Name for the model
        """
        self.config = config
        self.model_name = model_name
        self.rng = np.random.default_rng(config.get('random_state'))
        self.data_pipeline = DataPipeline(config, rng=self.rng)

        self.model = None
        self.loss_fn = None
        self.optimizer = None
        self.gradient_fn = None
        self.train_loader = None
        self.test_loader = None

        if auto_setup:
            self._auto_setup()

    def _auto_setup(self):
        """
        Automatically configure all components
        """
        self.configure_model()
        self.setup_loss_fn()
        self.setup_optimizer()
        self.setup_gradients()
        self.setup_dataloaders()

    def configure_model(self) -> Network:
        """
        Builds the network described by layer_sizes, activ_fn, activ_final and softmax
        """
        logger.info(f"======= {self.model_name} =======")

        layer_sizes = self.config['layer_sizes']
        input_features = self.data_pipeline.train_data[0].shape[0]
        if layer_sizes[0] != input_features:
            raise ValueError(
                f"layer_sizes starts with {layer_sizes[0]} but the data has {input_features} features")
        logger.info(f"Layer size: {layer_sizes}")

        activ_fn_key = self.config['activ_fn']
        if activ_fn_key not in ACTIVATIONS:
            raise ValueError(f"Unidentified Activation Function in config file.")
        logger.info(f"Activation Function: {activ_fn_key}")

        activ_final_key = self.config['activ_final']
        if activ_final_key is not None and activ_final_key not in ACTIVATIONS:
            raise ValueError(f"Unidentified final Activation Function in config file.")

        self.model = Network.from_sizes(
            layer_sizes,
            activation=activ_fn_key,
            final_activation=activ_final_key,
            softmax=self.config['softmax'],
            initializer=self.config['initializer'],
            rng=self.rng
        )

        for layer in self.model.layers:
            logger.info(f"{layer}")
        if self.model.softmax:
            logger.info("Final activation layer: softmax")
        logger.info(f"Parameters: {self.model.parameter_count()}")

        return self.model

    def setup_loss_fn(self):
        self.loss_fn = get_loss(self.config['loss_fn'])
        logger.info(f"Loss Function: {self.loss_fn.name}")
        return self.loss_fn

    def setup_optimizer(self):
        """
        Sets up the optimizer over the model's parameters
        """
        if self.model is None:
            raise ValueError("Model has not been created. Call configure_model() first")

        learning_rate = self.config['learning_rate']
        optimizer = get_optimizer(self.config['optimizer'])
        logger.info(f"Optimizer: {optimizer.__name__} | Learning rate: {learning_rate}")

        self.optimizer = optimizer(self.model.parameters(), lr=learning_rate)
        return self.optimizer

    def setup_gradients(self):
        self.gradient_fn = get_gradient_provider(self.config['gradients'])
        logger.info(f"Gradients: {self.gradient_fn.name}")
        return self.gradient_fn

    def setup_dataloaders(self) -> None:
        logger.info(f"Train Batch Size: {self.config['train_batch_size']}")

        self.train_loader = self.data_pipeline.create_train_dataloader()
        self.test_loader = self.data_pipeline.create_test_dataloader()

    def plot_graphs(self, history, save_path=None) -> None:
        """
        Plot the training loss and, if tracked, the accuracy curves
        ---
        Args:
            - history (Dict[str, List]):
                Output of train_and_evaluate()
            - save_path (str):
                Write the figure to this file instead of showing it
        """
        accuracy_keys = [key for key in history if key.endswith('_accuracy')]
        num_plots = 2 if accuracy_keys else 1

        fig, axes = plt.subplots(num_plots, 1, figsize=(10, 5 * num_plots), squeeze=False)

        epochs = range(1, len(history['loss']) + 1)
        axes[0, 0].plot(epochs, history['loss'], 'b-', linewidth=2)
        axes[0, 0].set_xlabel('Epoch')
        axes[0, 0].set_ylabel('Loss')
        axes[0, 0].set_title('Training Loss')
        axes[0, 0].grid(True, alpha=0.3)

        if accuracy_keys:
            for key in accuracy_keys:
                label = key.replace('_accuracy', '').capitalize()
                axes[1, 0].plot(history['evaluated_epochs'], history[key],
                                label=label, linewidth=2, marker='o')
            axes[1, 0].set_xlabel('Epoch')
            axes[1, 0].set_ylabel('Accuracy (%)')
            axes[1, 0].set_title('Accuracy Over Epochs')
            axes[1, 0].legend()
            axes[1, 0].grid(True, alpha=0.3)
            axes[1, 0].set_ylim([0, 100])

        plt.tight_layout()
        if save_path is not None:
            fig.savefig(save_path)
            logger.info(f"Saved training curves to {save_path}")
        else:
            plt.show()
        plt.close(fig)

    def test_loss(self) -> float:
        x, y = next(iter(self.test_loader))
        return self.loss_fn(self.model.forward(x), y)

    def train_and_evaluate(self, epochs=None) -> Dict[str, List]:
        """
        Trains the model, then evaluates it on the test split
        ---
        Args:
            epochs (int): Overrides config['epochs']
        ---
        Returns:
            Dict[str, List]: Training history, see Trainer.fit()
        """
        if self.model is None:
            raise ValueError("Your model has not been created. Call configure_model() first")

        if epochs is None:
            epochs = self.config['epochs']

        eval_data = None
        if self.config['task'] == 'classification':
            eval_data = {
                'train': self.data_pipeline.train_data,
                'test': self.data_pipeline.test_data
            }

        logger.info(f"Beginning training for {epochs} epochs.")
        trainer = Trainer(self.model, self.loss_fn, self.optimizer, self.gradient_fn)
        history = trainer.fit(
            self.train_loader,
            epochs,
            eval_data=eval_data,
            log_every=self.config['log_every'],
            evaluate_every=self.config['evaluate_every']
        )

        logger.info(f"Final train loss: {history['loss'][-1]:.6f} | Test loss: {self.test_loss():.6f}")

        if self.config['task'] == 'classification':
            self.report_classification()

        return history

    def report_classification(self) -> float:
        """
        Logs test accuracy, a per-class report and one example prediction
        """
        x_test, y_test = self.data_pipeline.test_data
        test_acc = accuracy(self.model, x_test, y_test)
        logger.info(f"Test accuracy: {test_acc:.2f}%")

        y_true = np.argmax(y_test, axis=0)
        y_pred = self.model.predict(x_test)
        report = classification_report(y_true, y_pred, zero_division=0)
        logger.info(f"\n{report}")

        label, probability = classify(self.model, x_test[:, 0])
        logger.info(f"First test image: predicted {label} with {probability:.2f}% probability "
                    f"(true label {y_true[0]})")

        return test_acc
