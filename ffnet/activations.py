import numpy as np


class Activation:
    """
    Elementwise activation function together with its derivative.

    Calling the object applies the function to every element of the input.
    `derivative(z)` returns d(phi)/dz evaluated at the pre-activation `z`,
    which is what backpropagation needs.
    ---
    Args:
        name (str): Key used in config files and by the torch gradient provider
        fn (Callable): phi(z), numpy-vectorised
        derivative (Callable): phi'(z), numpy-vectorised
    """
    def __init__(self, name, fn, derivative):
        self.name = name
        self.fn = fn
        self.derivative = derivative

    def __call__(self, z):
        return self.fn(np.asarray(z, dtype=float))

    def __repr__(self):
        return f"Activation({self.name})"


def _sigmoid(z):
    """
    Sigmoid activation function: sigma(z) = 1 / (1 + exp(-z))

    Squashes input values to range (0, 1).
    """
    # Clip z to prevent overflow in exp
    z = np.clip(z, -500, 500)
    return 1 / (1 + np.exp(-z))


def _sigmoid_derivative(z):
    s = _sigmoid(z)
    return s * (1 - s)


def _tanh_derivative(z):
    t = np.tanh(z)
    return 1 - t ** 2


def _relu(z):
    return np.maximum(0, z)


def _relu_derivative(z):
    return (z > 0).astype(float)


def _softplus(z):
    """
    Softplus activation function: log(1 + exp(z))

    logaddexp(0, z) evaluates the same quantity without overflowing for large z.
    """
    return np.logaddexp(0, z)


sigmoid = Activation('sigmoid', _sigmoid, _sigmoid_derivative)
tanh = Activation('tanh', np.tanh, _tanh_derivative)
relu = Activation('relu', _relu, _relu_derivative)
# d/dz log(1 + exp(z)) is the sigmoid
softplus = Activation('softplus', _softplus, _sigmoid)
identity = Activation('identity', lambda z: z, np.ones_like)


ACTIVATIONS = {
    'sigmoid': sigmoid,
    'tanh': tanh,
    'relu': relu,
    'softplus': softplus,
    'identity': identity
}


def get_activation(name):
    """
    Look up an activation by its config key. `None` means identity.
    """
    if name is None:
        return identity
    if isinstance(name, Activation):
        return name
    if name not in ACTIVATIONS:
        raise ValueError(f"Unidentified activation function: {name}")
    return ACTIVATIONS[name]


def softmax(z, axis=0):
    """
    Softmax activation function: softmax(z)_i = exp(z_i) / sum(exp(z_j))

    Converts raw scores (logits) into a probability distribution along `axis`
    (the feature axis, 0 for column-major batches).
    """
    z = np.asarray(z, dtype=float)
    # Subtract max for numerical stability (prevents overflow)
    exp_z = np.exp(z - np.max(z, axis=axis, keepdims=True))
    return exp_z / np.sum(exp_z, axis=axis, keepdims=True)
