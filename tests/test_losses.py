import numpy as np
import pytest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ffnet.data import onehot_batch
from ffnet.exceptions import NumericDomainError, ShapeMismatchError
from ffnet.losses import CrossEntropy, MeanSquaredError, get_loss


def _numeric_gradient(loss_fn, predictions, targets, h=1e-6):
    grad = np.zeros_like(predictions)
    for idx in np.ndindex(predictions.shape):
        plus, minus = predictions.copy(), predictions.copy()
        plus[idx] += h
        minus[idx] -= h
        grad[idx] = (loss_fn(plus, targets) - loss_fn(minus, targets)) / (2 * h)
    return grad


def test_mse_value_and_gradient():
    mse = MeanSquaredError()
    predictions = np.array([[1.0, 2.0], [3.0, 4.0]])
    targets = np.zeros((2, 2))

    assert np.isclose(mse(predictions, targets), 7.5), "mean(1, 4, 9, 16) = 7.5"
    assert np.allclose(mse.gradient(predictions, targets), predictions / 2)

    rng = np.random.default_rng(0)
    p, y = rng.standard_normal((3, 5)), rng.standard_normal((3, 5))
    assert np.allclose(mse.gradient(p, y), _numeric_gradient(mse, p, y), atol=1e-6)


def test_crossentropy_uniform_prediction():
    """A uniform guess over 10 classes costs log(10)."""
    ce = CrossEntropy()
    predictions = np.full((10, 4), 0.1)
    targets = onehot_batch([0, 3, 7, 9], 10)
    assert np.isclose(ce(predictions, targets), np.log(10))


def test_crossentropy_perfect_prediction():
    ce = CrossEntropy()
    targets = onehot_batch([1, 0, 2], 3)
    assert abs(ce(targets.copy(), targets)) < 1e-12


def test_crossentropy_zero_probability_is_finite():
    ce = CrossEntropy()
    predictions = np.array([[1.0], [0.0]])
    targets = np.array([[0.0], [1.0]])

    loss = ce(predictions, targets)
    assert np.isfinite(loss), "Epsilon floor should prevent log(0)"
    assert np.isclose(loss, -np.log(ce.epsilon))


def test_crossentropy_gradient():
    ce = CrossEntropy()
    rng = np.random.default_rng(1)
    predictions = rng.uniform(0.05, 1.0, size=(4, 6))
    predictions /= predictions.sum(axis=0, keepdims=True)
    targets = onehot_batch(rng.integers(0, 4, size=6), 4)

    assert np.allclose(ce.gradient(predictions, targets),
                       _numeric_gradient(ce, predictions, targets), atol=1e-5)


def test_crossentropy_single_sample():
    ce = CrossEntropy()
    loss = ce(np.array([0.25, 0.75]), np.array([0.0, 1.0]))
    assert np.isclose(loss, -np.log(0.75))
    assert ce.gradient(np.array([0.25, 0.75]), np.array([0.0, 1.0])).shape == (2,)


def test_crossentropy_rejects_negative_probabilities():
    ce = CrossEntropy()
    with pytest.raises(NumericDomainError):
        ce(np.array([[-0.1], [1.1]]), np.array([[0.0], [1.0]]))


def test_loss_shape_mismatch():
    with pytest.raises(ShapeMismatchError):
        MeanSquaredError()(np.zeros((2, 3)), np.zeros((3, 2)))
    with pytest.raises(ShapeMismatchError):
        CrossEntropy()(np.full((3, 2), 1 / 3), np.zeros((2, 2)))


def test_get_loss():
    assert isinstance(get_loss('mse'), MeanSquaredError)
    assert isinstance(get_loss('crossentropy'), CrossEntropy)
    with pytest.raises(ValueError):
        get_loss('hinge')


def test_crossentropy_gradient_below_epsilon():
    """A true class predicted at (almost) zero still gets a large, finite gradient."""
    ce = CrossEntropy()
    predictions = np.array([[1.0, 1.0 - 4e-18], [0.0, 4e-18]])
    targets = np.array([[0.0, 0.0], [1.0, 1.0]])

    grad = ce.gradient(predictions, targets)
    assert np.all(np.isfinite(grad))
    assert np.all(grad[1] < -1e10), "True class gradient should not vanish"
    assert np.all(grad[0] == 0)
