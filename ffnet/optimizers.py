import numpy as np

from .exceptions import ShapeMismatchError


class Optimizer:
    """
    Base class for update rules that mutate a fixed list of parameter arrays in place.
    """
    def __init__(self, parameters, lr):
        self.parameters = list(parameters)
        self.lr = lr

    def _check_gradients(self, gradients):
        gradients = [np.asarray(g, dtype=float) for g in gradients]
        if len(gradients) != len(self.parameters):
            raise ShapeMismatchError(
                f"Expected {len(self.parameters)} gradients, got {len(gradients)}")
        for idx, (param, grad) in enumerate(zip(self.parameters, gradients)):
            if grad.shape != param.shape:
                raise ShapeMismatchError(
                    f"Gradient {idx} has shape {grad.shape}, parameter has shape {param.shape}")
        return gradients

    def step(self, gradients):
        raise NotImplementedError


class Descent(Optimizer):
    """
    Plain gradient descent: param -= lr * g
    """
    def __init__(self, parameters, lr=0.1):
        super().__init__(parameters, lr)

    def step(self, gradients):
        gradients = self._check_gradients(gradients)
        for param, grad in zip(self.parameters, gradients):
            param -= self.lr * grad


class Adam(Optimizer):
    """
    Adam optimizer with bias-corrected first and second moment estimates.

    State per parameter: first moment m and second moment v (zeros, same shape
    as the parameter). The step counter t is shared by all parameters and
    advances once per call to `step`.

    Update for each parameter with gradient g:
        m = beta_1 * m + (1 - beta_1) * g
        v = beta_2 * v + (1 - beta_2) * g^2
        m_hat = m / (1 - beta_1^t)
        v_hat = v / (1 - beta_2^t)
        param -= lr * m_hat / (sqrt(v_hat) + epsilon)
    """
    def __init__(self, parameters, lr=0.001, beta_1=0.9, beta_2=0.999, epsilon=1e-8):
        super().__init__(parameters, lr)
        self.beta_1 = beta_1
        self.beta_2 = beta_2
        self.epsilon = epsilon

        self.m = [np.zeros_like(p, dtype=float) for p in self.parameters]
        self.v = [np.zeros_like(p, dtype=float) for p in self.parameters]
        self.t = 0

    def step(self, gradients):
        # Validate everything before touching any parameter
        gradients = self._check_gradients(gradients)

        self.t += 1
        bc1 = 1 - self.beta_1 ** self.t
        bc2 = 1 - self.beta_2 ** self.t

        for param, grad, m, v in zip(self.parameters, gradients, self.m, self.v):
            m *= self.beta_1
            m += (1 - self.beta_1) * grad
            v *= self.beta_2
            v += (1 - self.beta_2) * grad ** 2

            m_hat = m / bc1
            v_hat = v / bc2
            param -= self.lr * m_hat / (np.sqrt(v_hat) + self.epsilon)


OPTIMIZERS = {
    'adam': Adam,
    'descent': Descent
}


def get_optimizer(name):
    if name not in OPTIMIZERS:
        raise ValueError(f"Unable to identify Optimizer: {name}")
    return OPTIMIZERS[name]
