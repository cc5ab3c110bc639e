import numpy as np

from .activations import get_activation, identity
from .exceptions import ShapeMismatchError


def _normal(rng, out_features, in_features):
    return rng.standard_normal((out_features, in_features))


def _he_normal(rng, out_features, in_features):
    # He initialization: scale by sqrt(2 / fan_in)
    return rng.standard_normal((out_features, in_features)) * np.sqrt(2.0 / in_features)


def _xavier_uniform(rng, out_features, in_features):
    limit = np.sqrt(6.0 / (in_features + out_features))
    return rng.uniform(-limit, limit, size=(out_features, in_features))


INITIALIZERS = {
    'normal': _normal,
    'he_normal': _he_normal,
    'xavier_uniform': _xavier_uniform
}


class DenseLayer:
    """
    Fully connected layer computing activation(W·x + b).

    Inputs are column-major: a single sample has shape (in_features,), a batch
    has shape (in_features, batch_size). The weight matrix has shape
    (out_features, in_features) and the bias has length out_features.
    Both are drawn once here and afterwards only mutated in place by an optimizer.
    """
    def __init__(self, in_features, out_features, activation=identity, bias=True,
                 initializer='normal', rng=None):
        """
        Args:
            in_features : int
                Number of inputs per sample
            out_features : int
                Number of neurons in this layer
            activation : Activation or str, default=identity
                Elementwise non-linearity applied after the affine map
            bias : bool, default=True
                Whether the layer carries a bias vector
            initializer : str, default='normal'
                'normal' (standard normal), 'he_normal' or 'xavier_uniform'
            rng : numpy.random.Generator, optional
                Source of randomness for the weight draw
        """
        if in_features < 1 or out_features < 1:
            raise ValueError(f"Layer sizes must be positive, got ({in_features}, {out_features})")
        if initializer not in INITIALIZERS:
            raise ValueError(f"Unable to identify initializer: {initializer}")

        rng = rng if rng is not None else np.random.default_rng()

        self.in_features = in_features
        self.out_features = out_features
        self.activation = get_activation(activation)
        self.weight = INITIALIZERS[initializer](rng, out_features, in_features)
        self.bias = np.zeros(out_features) if bias else None

    @classmethod
    def from_arrays(cls, weight, bias=None, activation=identity):
        """
        Build a layer around existing parameters instead of a random draw.
        """
        weight = np.array(weight, dtype=float, ndmin=2)
        out_features, in_features = weight.shape

        layer = cls(in_features, out_features, activation=activation, bias=bias is not None)
        layer.weight = weight
        if bias is not None:
            bias = np.array(bias, dtype=float, ndmin=1)
            if bias.shape != (out_features,):
                raise ShapeMismatchError(
                    f"Bias of shape {bias.shape} does not match {out_features} output features")
            layer.bias = bias
        return layer

    def forward(self, x):
        """
        Forward pass through the layer.
        ---
        Args:
            x : numpy.ndarray
                Input of shape (in_features,) or (in_features, batch_size)
        ---
        Returns:
            numpy.ndarray of shape (out_features,) or (out_features, batch_size)
        """
        x = np.asarray(x, dtype=float)
        if x.ndim not in (1, 2) or x.shape[0] != self.in_features:
            raise ShapeMismatchError(
                f"Layer expects {self.in_features} input features, got input of shape {x.shape}")

        z = self.weight @ x
        if self.bias is not None:
            # Broadcast the bias over the batch axis
            z = z + (self.bias if x.ndim == 1 else self.bias[:, np.newaxis])
        return self.activation(z)

    __call__ = forward

    def parameters(self):
        if self.bias is None:
            return [self.weight]
        return [self.weight, self.bias]

    def __repr__(self):
        return f"DenseLayer({self.in_features} => {self.out_features}, {self.activation.name})"


def neuron(x, w, b, activation=identity):
    """
    A single artificial neuron: a = phi(b + sum_i w_i x_i)
    """
    x = np.asarray(x, dtype=float)
    w = np.asarray(w, dtype=float)
    if x.shape != w.shape:
        raise ShapeMismatchError(f"Inputs {x.shape} and weights {w.shape} differ in shape")
    z = np.dot(x, w) + b
    return get_activation(activation)(z)


def feedforward(x, w1, w2, b1, b2, activation=identity):
    """
    One hidden layer written out explicitly.

    Computes:
    1. Hidden layer: z = b1 + w1·x, a = phi(z)
    2. Output layer: g = b2 + w2·a (linear)
    """
    x = np.asarray(x, dtype=float)
    w1 = np.asarray(w1, dtype=float)
    w2 = np.asarray(w2, dtype=float)
    if w1.shape[1] != x.shape[0] or w2.shape[1] != w1.shape[0]:
        raise ShapeMismatchError(
            f"Cannot chain w1 {w1.shape} and w2 {w2.shape} on input of shape {x.shape}")

    z = np.asarray(b1, dtype=float) + w1 @ x
    a = get_activation(activation)(z)
    return np.asarray(b2, dtype=float) + w2 @ a
