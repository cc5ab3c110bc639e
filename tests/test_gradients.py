import numpy as np
import pytest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ffnet.data import onehot_batch
from ffnet.exceptions import NumericDomainError
from ffnet.gradients import Backpropagation, TorchAutograd, get_gradient_provider
from ffnet.layers import DenseLayer
from ffnet.losses import CrossEntropy, MeanSquaredError
from ffnet.network import Network


def _classifier():
    rng = np.random.default_rng(0)
    model = Network.from_sizes([5, 6, 4], activation='tanh', softmax=True, rng=rng)
    x = rng.standard_normal((5, 8))
    y = onehot_batch(rng.integers(0, 4, size=8), 4)
    return model, x, y


def _regressor():
    rng = np.random.default_rng(1)
    model = Network.from_sizes([2, 3, 3, 1], activation='softplus', rng=rng)
    x = rng.standard_normal((2, 12))
    y = rng.standard_normal((1, 12))
    return model, x, y


def _finite_difference(loss_fn, model, x, y, h=1e-6):
    grads = []
    for param in model.parameters():
        grad = np.zeros_like(param)
        for idx in np.ndindex(param.shape):
            original = param[idx]
            param[idx] = original + h
            plus = loss_fn(model.forward(x), y)
            param[idx] = original - h
            minus = loss_fn(model.forward(x), y)
            param[idx] = original
            grad[idx] = (plus - minus) / (2 * h)
        grads.append(grad)
    return grads


@pytest.mark.parametrize("setup, loss_fn", [
    (_classifier, CrossEntropy()),
    (_regressor, MeanSquaredError()),
])
def test_backprop_matches_finite_differences(setup, loss_fn):
    model, x, y = setup()

    loss, grads = Backpropagation()(loss_fn, model, x, y)
    numeric = _finite_difference(loss_fn, model, x, y)

    assert np.isclose(loss, loss_fn(model.forward(x), y))
    for grad, expected in zip(grads, numeric):
        assert np.allclose(grad, expected, atol=1e-6), "Backprop gradient differs from finite differences"


@pytest.mark.parametrize("setup, loss_fn", [
    (_classifier, CrossEntropy()),
    (_regressor, MeanSquaredError()),
])
def test_backprop_matches_torch(setup, loss_fn):
    model, x, y = setup()

    manual_loss, manual = Backpropagation()(loss_fn, model, x, y)
    torch_loss, autograd = TorchAutograd()(loss_fn, model, x, y)

    assert np.isclose(manual_loss, torch_loss)
    assert len(manual) == len(autograd) == len(model.parameters())
    for a, b, param in zip(manual, autograd, model.parameters()):
        assert a.shape == b.shape == param.shape
        assert np.allclose(a, b, atol=1e-10), "Manual and torch gradients should agree"


def test_providers_do_not_touch_parameters():
    model, x, y = _classifier()
    before = [p.copy() for p in model.parameters()]

    for provider in (Backpropagation(), TorchAutograd()):
        provider(CrossEntropy(), model, x, y)

    for old, new in zip(before, model.parameters()):
        assert np.array_equal(old, new)


def test_gradients_without_bias():
    """f(x) = w * x with MSE: dL/dw = 2 * mean((w x - y) x)."""
    layer = DenseLayer.from_arrays([[0.5]])
    model = Network([layer])
    x = np.array([[1.0, 2.0, 3.0]])
    y = 2 * x

    for provider in (Backpropagation(), TorchAutograd()):
        _, grads = provider(MeanSquaredError(), model, x, y)
        assert len(grads) == 1
        expected = 2 * np.mean((0.5 * x - y) * x)
        assert np.isclose(grads[0].item(), expected)


def test_single_sample_inputs():
    model, x, y = _classifier()
    loss, grads = Backpropagation()(CrossEntropy(), model, x[:, 0], y[:, 0])
    assert np.isfinite(loss)
    assert [g.shape for g in grads] == [p.shape for p in model.parameters()]


def test_crossentropy_on_negative_outputs():
    model = Network([DenseLayer.from_arrays([[-1.0], [1.0]], [0.0, 0.0])])
    x = np.array([[1.0]])
    y = np.array([[1.0], [0.0]])

    for provider in (Backpropagation(), TorchAutograd()):
        with pytest.raises(NumericDomainError):
            provider(CrossEntropy(), model, x, y)


def test_get_gradient_provider():
    assert isinstance(get_gradient_provider('backprop'), Backpropagation)
    assert isinstance(get_gradient_provider('torch'), TorchAutograd)
    with pytest.raises(ValueError):
        get_gradient_provider('jax')


def test_confidently_wrong_prediction_still_has_gradient():
    """Logits [40, 0] with true class 1: p[1] ~ 4e-18 sits far below epsilon."""
    model = Network([DenseLayer.from_arrays([[40.0], [0.0]], [0.0, 0.0])], softmax=True)
    x = np.array([[1.0]])
    y = np.array([[0.0], [1.0]])

    for provider in (Backpropagation(), TorchAutograd()):
        _, (weight_grad, bias_grad) = provider(CrossEntropy(), model, x, y)
        assert np.all(bias_grad != 0), "Wrong sample should still be pushed towards its class"
        assert bias_grad[0] > 0 and bias_grad[1] < 0, \
            "Gradient descent should lower the wrong logit and raise the true one"
        assert np.allclose(weight_grad.ravel(), bias_grad)


def test_one_dimensional_targets_per_sample():
    """Scalar regression targets of shape (B,) pair with inputs of shape (1, B)."""
    model = Network([DenseLayer.from_arrays([[0.5]], [0.1])])
    x = np.array([[1.0, 2.0, 3.0, 4.0]])
    y_flat = 2 * x.ravel()

    for provider in (Backpropagation(), TorchAutograd()):
        loss_flat, grads_flat = provider(MeanSquaredError(), model, x, y_flat)
        loss_row, grads_row = provider(MeanSquaredError(), model, x, y_flat.reshape(1, -1))
        assert np.isclose(loss_flat, loss_row)
        for a, b in zip(grads_flat, grads_row):
            assert np.allclose(a, b)
