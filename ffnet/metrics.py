import numpy as np

from .exceptions import ShapeMismatchError


def accuracy(network, inputs, targets, digits=2):
    """
    Percentage of samples whose arg-max prediction matches the label.

    The whole dataset goes through the network as one batch. Targets are either
    one-hot columns (num_classes, N) or integer labels (N,). Ties resolve to the
    first index.
    ---
    Returns:
        float : 100 * matches / N rounded to `digits` decimals
    """
    predictions = np.asarray(network.forward(inputs))
    targets = np.asarray(targets)

    if predictions.ndim == 1:
        predictions = predictions.reshape(-1, 1)
    labels = targets.astype(int) if targets.ndim == 1 else np.argmax(targets, axis=0)

    predicted = np.argmax(predictions, axis=0)
    if predicted.shape != labels.shape:
        raise ShapeMismatchError(
            f"{predicted.shape[0]} predictions for {labels.shape[0]} targets")

    return round(100 * float(np.mean(predicted == labels)), digits)


def classify(network, x, digits=2):
    """
    Most likely class of a single sample and its probability in percent.
    """
    probabilities = np.asarray(network.forward(np.asarray(x).ravel()))
    label = int(np.argmax(probabilities))
    return label, round(100 * float(probabilities[label]), digits)
