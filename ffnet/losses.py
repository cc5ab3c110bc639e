import numpy as np

from .exceptions import NumericDomainError, ShapeMismatchError


def _check_shapes(predictions, targets):
    predictions = np.asarray(predictions, dtype=float)
    targets = np.asarray(targets, dtype=float)
    if predictions.shape != targets.shape:
        raise ShapeMismatchError(
            f"Predictions of shape {predictions.shape} do not match targets of shape {targets.shape}")
    return predictions, targets


class MeanSquaredError:
    """
    Mean squared error over every element of the batch: L = mean((pred - y)^2)

    Used for regression.
    """
    name = 'mse'

    def __call__(self, predictions, targets):
        predictions, targets = _check_shapes(predictions, targets)
        return float(np.mean((predictions - targets) ** 2))

    def gradient(self, predictions, targets):
        """
        dL/dpred = 2 * (pred - y) / number_of_elements
        """
        predictions, targets = _check_shapes(predictions, targets)
        return 2 * (predictions - targets) / predictions.size


class CrossEntropy:
    """
    Cross-entropy between predicted class probabilities and one-hot targets.

    Cross-entropy loss measures the difference between predicted probability
    distribution and true distribution: L = -mean(sum(y * log(pred), axis=features))

    Predictions are column-major, (num_classes, batch_size), so the sum runs
    over axis 0 and the mean over the batch.
    """
    name = 'crossentropy'

    def __init__(self, epsilon=1e-15):
        """
        Args:
            epsilon (float): Added to predictions to prevent log(0)
        """
        self.epsilon = epsilon

    def _validate(self, predictions, targets):
        predictions, targets = _check_shapes(predictions, targets)
        if np.any(predictions < 0):
            raise NumericDomainError("Cross-entropy requires non-negative probabilities")
        if predictions.ndim == 1:
            # Single sample: treat as one column
            predictions = predictions.reshape(-1, 1)
            targets = targets.reshape(-1, 1)
        return predictions, targets

    def __call__(self, predictions, targets):
        predictions, targets = self._validate(predictions, targets)
        # Add small epsilon to prevent log(0) which would give -inf
        return float(-np.mean(np.sum(targets * np.log(predictions + self.epsilon), axis=0)))

    def gradient(self, predictions, targets):
        """
        dL/dpred = -y / (pred + epsilon) / batch_size
        """
        original_shape = np.shape(predictions)
        predictions, targets = self._validate(predictions, targets)
        batch_size = predictions.shape[1]

        grad = -targets / (predictions + self.epsilon) / batch_size
        return grad.reshape(original_shape)


LOSS_FUNCTIONS = {
    'mse': MeanSquaredError,
    'crossentropy': CrossEntropy
}


def get_loss(name):
    if name not in LOSS_FUNCTIONS:
        raise ValueError(f"Unknown loss function: {name}")
    return LOSS_FUNCTIONS[name]()
