import math

import numpy as np

from config.logging_config import logger
from .exceptions import TrainingDivergedError
from .metrics import accuracy


def _due(epoch, every):
    # Report on epochs 1, every + 1, 2 * every + 1, ...
    return every == 1 or epoch % every == 1


class Trainer:
    """
    Mini-batch gradient descent over a Network.

    Each batch: the gradient provider runs the forward pass, the loss and the
    gradients; the loss is checked for NaN/Inf; the optimizer updates every
    parameter in place. The epoch loss is the mean over batches.
    """
    def __init__(self, network, loss_fn, optimizer, gradient_fn):
        """
        Args:
            network (Network): Model whose parameters are trained
            loss_fn (MeanSquaredError or CrossEntropy): Loss to minimise
            optimizer (Optimizer): Built over network.parameters()
            gradient_fn (Backpropagation or TorchAutograd): Gradient provider
        """
        self.network = network
        self.loss_fn = loss_fn
        self.optimizer = optimizer
        self.gradient_fn = gradient_fn

    def train_epoch(self, loader, epoch=1):
        """
        One pass over the loader.
        ---
        Returns:
            float : Mean batch loss of the epoch
        """
        num_batches = len(loader)
        epoch_loss = 0.0

        for batch_idx, (x, y) in enumerate(loader):
            # Compute the loss and the gradients
            loss, grads = self.gradient_fn(self.loss_fn, self.network, x, y)

            if not math.isfinite(loss):
                logger.error(f"Training diverged at epoch {epoch}, batch {batch_idx + 1}: loss {loss}")
                raise TrainingDivergedError(epoch, batch_idx + 1, loss)

            if not all(np.all(np.isfinite(g)) for g in grads):
                logger.error(f"Training diverged at epoch {epoch}, batch {batch_idx + 1}: non-finite gradient")
                raise TrainingDivergedError(epoch, batch_idx + 1, loss, what='gradient')

            # Update the model parameters (and the optimizer state)
            self.optimizer.step(grads)

            # Accumulate the mean loss
            epoch_loss += loss / num_batches

        return epoch_loss

    def fit(self, loader, epochs, eval_data=None, log_every=1, evaluate_every=1):
        """
        Trains for a fixed number of epochs.
        ---
        Args:
            loader (BatchLoader): Training batches, restarted every epoch
            epochs (int): Number of epochs
            eval_data (Dict[str, Tuple[ndarray, ndarray]]): Named (inputs, targets)
                pairs whose accuracy is tracked, e.g. {'train': ..., 'test': ...}
            log_every (int): Log the loss when epoch mod log_every == 1
            evaluate_every (int): Compute accuracies when epoch mod evaluate_every == 1
        ---
        Returns:
            Dict[str, List] with
                - loss: mean training loss per epoch
                - evaluated_epochs: epochs at which accuracies were computed
                - <name>_accuracy: accuracy per evaluated epoch for every eval_data entry
        """
        eval_data = eval_data or {}
        history = {'loss': [], 'evaluated_epochs': []}
        for name in eval_data:
            history[f"{name}_accuracy"] = []

        for epoch in range(1, epochs + 1):
            epoch_loss = self.train_epoch(loader, epoch)
            history['loss'].append(epoch_loss)

            message = f"After epoch {epoch}: loss {epoch_loss:.6f}"

            if eval_data and _due(epoch, evaluate_every):
                history['evaluated_epochs'].append(epoch)
                for name, (x, y) in eval_data.items():
                    acc = accuracy(self.network, x, y)
                    history[f"{name}_accuracy"].append(acc)
                    message += f" | {name} accuracy {acc:.2f}%"
                logger.info(message)
            elif _due(epoch, log_every):
                logger.info(message)

        return history
