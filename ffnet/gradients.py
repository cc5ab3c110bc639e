"""
Gradient providers.

A provider is called as `provider(loss_fn, network, inputs, targets)` and returns
`(loss, gradients)`, where `gradients` lines up one-to-one with
`network.parameters()` and every gradient has its parameter's shape.
"""
import numpy as np
import torch
import torch.nn.functional as F

from .activations import softmax
from .exceptions import NumericDomainError, ShapeMismatchError


def _as_batch(inputs, targets):
    inputs = np.asarray(inputs, dtype=float)
    targets = np.asarray(targets, dtype=float)
    if inputs.ndim == 2 and targets.ndim == 1 and targets.shape[0] == inputs.shape[-1]:
        # One scalar target per sample
        targets = targets.reshape(1, -1)
    # Single samples become one-column batches
    if inputs.ndim == 1:
        inputs = inputs.reshape(-1, 1)
    if targets.ndim == 1:
        targets = targets.reshape(-1, 1)
    if inputs.shape[-1] != targets.shape[-1]:
        raise ShapeMismatchError(
            f"Inputs hold {inputs.shape[-1]} samples but targets hold {targets.shape[-1]}")
    return inputs, targets


class Backpropagation:
    """
    Manual backpropagation through a chain of dense layers.

    Uses the chain rule to propagate gradients backward:
    1. dL/da_L from the loss (through the softmax Jacobian when enabled)
    2. dL/dz_k = dL/da_k * phi'(z_k)
    3. dL/dW_k = dL/dz_k · a_{k-1}.T, dL/db_k = sum over the batch of dL/dz_k
    4. dL/da_{k-1} = W_k.T · dL/dz_k
    """
    name = 'backprop'

    def __call__(self, loss_fn, network, inputs, targets):
        inputs, targets = _as_batch(inputs, targets)

        # Forward pass, keeping every pre-activation and activation
        activations = [inputs]
        pre_activations = []
        for layer in network.layers:
            a_prev = activations[-1]
            if a_prev.shape[0] != layer.in_features:
                raise ShapeMismatchError(
                    f"Layer expects {layer.in_features} input features, got input of shape {a_prev.shape}")
            z = layer.weight @ a_prev
            if layer.bias is not None:
                z = z + layer.bias[:, np.newaxis]
            pre_activations.append(z)
            activations.append(layer.activation(z))

        out = activations[-1]
        predictions = softmax(out, axis=0) if network.softmax else out
        loss = loss_fn(predictions, targets)

        delta = loss_fn.gradient(predictions, targets)
        if network.softmax:
            # Softmax Jacobian-vector product: p * (d - sum(d * p))
            delta = predictions * (delta - np.sum(delta * predictions, axis=0, keepdims=True))

        grads = []
        for layer, z, a_prev in zip(reversed(network.layers),
                                    reversed(pre_activations),
                                    reversed(activations[:-1])):
            dz = delta * layer.activation.derivative(z)
            if layer.bias is not None:
                grads.append(np.sum(dz, axis=1))
            grads.append(dz @ a_prev.T)
            delta = layer.weight.T @ dz

        grads.reverse()
        return loss, grads


_TORCH_ACTIVATIONS = {
    'sigmoid': torch.sigmoid,
    'tanh': torch.tanh,
    'relu': torch.relu,
    'softplus': F.softplus,
    'identity': lambda z: z
}


def _torch_mse(predictions, targets, loss_fn):
    return torch.mean((predictions - targets) ** 2)


def _torch_crossentropy(predictions, targets, loss_fn):
    return -torch.mean(torch.sum(targets * torch.log(predictions + loss_fn.epsilon), dim=0))


_TORCH_LOSSES = {
    'mse': _torch_mse,
    'crossentropy': _torch_crossentropy
}


class TorchAutograd:
    """
    Gradients from PyTorch's reverse-mode autodiff.

    The network's parameters are copied into leaf tensors, the forward pass and
    loss are replayed with torch ops, and `torch.autograd.grad` returns one
    gradient per leaf. The numpy parameters themselves are never touched.
    """
    name = 'torch'

    def __init__(self, dtype=torch.float64):
        self.dtype = dtype

    def __call__(self, loss_fn, network, inputs, targets):
        if loss_fn.name not in _TORCH_LOSSES:
            raise ValueError(f"No torch implementation for loss function: {loss_fn.name}")

        inputs, targets = _as_batch(inputs, targets)
        params = [torch.tensor(p, dtype=self.dtype, requires_grad=True)
                  for p in network.parameters()]

        out = torch.as_tensor(inputs, dtype=self.dtype)
        leaves = iter(params)
        for layer in network.layers:
            if out.shape[0] != layer.in_features:
                raise ShapeMismatchError(
                    f"Layer expects {layer.in_features} input features, got input of shape {tuple(out.shape)}")
            out = next(leaves) @ out
            if layer.bias is not None:
                out = out + next(leaves).unsqueeze(1)
            out = _TORCH_ACTIVATIONS[layer.activation.name](out)

        if network.softmax:
            out = torch.softmax(out, dim=0)

        if loss_fn.name == 'crossentropy' and bool(torch.any(out < 0)):
            raise NumericDomainError("Cross-entropy requires non-negative probabilities")

        loss = _TORCH_LOSSES[loss_fn.name](out, torch.as_tensor(targets, dtype=self.dtype), loss_fn)
        grads = torch.autograd.grad(loss, params)

        return loss.item(), [g.detach().numpy().astype(p.dtype, copy=False)
                             for g, p in zip(grads, network.parameters())]


GRADIENT_PROVIDERS = {
    'backprop': Backpropagation,
    'torch': TorchAutograd
}


def get_gradient_provider(name):
    if name not in GRADIENT_PROVIDERS:
        raise ValueError(f"Unknown gradient provider: {name}")
    return GRADIENT_PROVIDERS[name]()
