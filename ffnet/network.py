import numpy as np

from .activations import get_activation, identity, softmax as _softmax
from .exceptions import ShapeMismatchError
from .layers import DenseLayer


class Network:
    """
    Ordered chain of dense layers with an optional softmax over the feature axis.

    With `softmax=True` every output column is a probability distribution,
    which is what the cross-entropy loss and the accuracy evaluator expect.
    Calling `forward` never changes the parameters.
    """
    def __init__(self, layers, softmax=False):
        """
        Args:
            layers (List[DenseLayer]): Layers in forward order
            softmax (bool): Append a softmax normalisation after the last layer
        """
        layers = list(layers)
        if not layers:
            raise ValueError("A network needs at least one layer")

        for idx, (prev, curr) in enumerate(zip(layers[:-1], layers[1:])):
            if curr.in_features != prev.out_features:
                raise ShapeMismatchError(
                    f"Layer {idx + 1} expects {curr.in_features} inputs "
                    f"but layer {idx} produces {prev.out_features}")

        self.layers = layers
        self.softmax = softmax

    @classmethod
    def from_sizes(cls, layer_sizes, activation='sigmoid', final_activation=identity,
                   softmax=False, initializer='normal', rng=None):
        """
        Builds a network from a list of sizes.
        ---
        Args:
            - layer_sizes (List[int]):
                [input_features, hidden_1, ..., output_features]
            - activation (Activation or str):
                Activation for hidden layers
            - final_activation (Activation or str):
                Activation of the output layer (default: identity)
            - softmax (bool):
                Normalise outputs into probabilities
            - initializer (str):
                Weight initializer for every layer
            - rng (numpy.random.Generator):
                Shared random generator, for reproducible draws
        """
        if len(layer_sizes) < 2:
            raise ValueError(f"Need at least input and output sizes, got {layer_sizes}")

        rng = rng if rng is not None else np.random.default_rng()
        activation = get_activation(activation)
        final_activation = get_activation(final_activation)

        layers = []
        for in_size, out_size in zip(layer_sizes[:-2], layer_sizes[1:-1]):
            layers.append(DenseLayer(in_size, out_size, activation, initializer=initializer, rng=rng))
        layers.append(DenseLayer(layer_sizes[-2], layer_sizes[-1], final_activation,
                                 initializer=initializer, rng=rng))
        return cls(layers, softmax=softmax)

    @property
    def in_features(self):
        return self.layers[0].in_features

    @property
    def out_features(self):
        return self.layers[-1].out_features

    def forward(self, x):
        """
        Forward propagation through every layer in order.
        ---
        Args:
            x : numpy.ndarray
                Input of shape (in_features,) or (in_features, batch_size)
        ---
        Returns:
            numpy.ndarray of shape (out_features,) or (out_features, batch_size)
        """
        out = x
        for layer in self.layers:
            out = layer.forward(out)
        if self.softmax:
            out = _softmax(out, axis=0)
        return out

    __call__ = forward

    def predict(self, x):
        """
        Predicted class index per sample (first index wins on ties).
        """
        return np.argmax(self.forward(x), axis=0)

    def parameters(self):
        params = []
        for layer in self.layers:
            params.extend(layer.parameters())
        return params

    def parameter_count(self):
        return sum(p.size for p in self.parameters())

    def __repr__(self):
        layers = ", ".join(repr(layer) for layer in self.layers)
        suffix = ", softmax" if self.softmax else ""
        return f"Network({layers}{suffix})"
