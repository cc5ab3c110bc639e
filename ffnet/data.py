import math

import numpy as np
import pandas as pd
from sklearn.datasets import load_digits
from sklearn.model_selection import train_test_split

from config.logging_config import logger
from .exceptions import ShapeMismatchError


class BatchLoader:
    """
    Splits aligned (inputs, targets) arrays into mini-batches along the sample axis.

    Samples live on the last axis, so inputs are (features, N) and targets are
    (outputs, N) or (N,). Every call to iter() starts a new epoch; with
    shuffle=True the sample permutation is redrawn each time.

    Incomplete final batches are kept unless drop_last=True, so an epoch has
    ceil(N / batch_size) batches by default and floor(N / batch_size) otherwise.
    """
    def __init__(self, inputs, targets, batch_size=1, shuffle=False, drop_last=False, rng=None):
        """
        Args:
            inputs (numpy.ndarray): Input features, samples on the last axis
            targets (numpy.ndarray): Targets, samples on the last axis
            batch_size (int): Samples per batch
            shuffle (bool): Redraw the sample order at the start of every epoch
            drop_last (bool): Drop the final batch when it is smaller than batch_size
            rng (numpy.random.Generator): Source of the shuffling permutations
        """
        inputs = np.asarray(inputs)
        targets = np.asarray(targets)
        if inputs.shape[-1] != targets.shape[-1]:
            raise ShapeMismatchError(
                f"Inputs hold {inputs.shape[-1]} samples but targets hold {targets.shape[-1]}")
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")

        self.inputs = inputs
        self.targets = targets
        self.batch_size = batch_size
        self.shuffle = shuffle
        self.drop_last = drop_last
        self.rng = rng if rng is not None else np.random.default_rng()

    @property
    def num_samples(self):
        return self.inputs.shape[-1]

    def __len__(self):
        if self.drop_last:
            return self.num_samples // self.batch_size
        return math.ceil(self.num_samples / self.batch_size)

    def __iter__(self):
        if self.shuffle:
            order = self.rng.permutation(self.num_samples)
        else:
            order = np.arange(self.num_samples)

        for batch_idx in range(len(self)):
            idx = order[batch_idx * self.batch_size:(batch_idx + 1) * self.batch_size]
            # Fancy indexing copies, the source arrays stay untouched
            yield self.inputs[..., idx], self.targets[..., idx]


def onehot_batch(labels, num_classes=10):
    """
    Encode integer class labels as a (num_classes, N) one-hot matrix.
    """
    labels = np.asarray(labels).astype(int).ravel()
    if np.any(labels < 0) or np.any(labels >= num_classes):
        raise ValueError(f"Labels must lie in [0, {num_classes - 1}]")

    one_hot = np.zeros((num_classes, labels.shape[0]))
    one_hot[labels, np.arange(labels.shape[0])] = 1
    return one_hot


def onecold(y):
    """
    Inverse of onehot_batch: index of the largest entry in every column.
    """
    return np.argmax(np.asarray(y), axis=0)


def target_function(x):
    """
    f(x) = exp(x) - x^3, the function approximated in the regression example.
    """
    return np.exp(x) - x ** 3


def sample_function(fn=target_function, num_samples=10000, low=-2.0, high=2.0, rng=None):
    """
    Draw regression data by evaluating fn at uniform random points.
    ---
    Returns:
        inputs, outputs (tuple): two (1, num_samples) arrays
    """
    rng = rng if rng is not None else np.random.default_rng()
    inputs = rng.uniform(low, high, size=(1, num_samples))
    return inputs, fn(inputs)


class DataPipeline():
    def __init__(self, config, rng=None):
        self.config = config
        # Shared with weight initialisation when passed in
        self.rng = rng if rng is not None else np.random.default_rng(config.get('random_state'))

        self.train_data = None
        self.test_data = None

        # Automatically load and split data
        self.preprocess_data()

    def preprocess_data(self):
        """
        Loads the dataset for the configured task and splits it into train/test
        """
        task = self.config['task']

        if task == 'regression':
            X, y = sample_function(num_samples=self.config['num_samples'], rng=self.rng)
            X, y = X.T, y.T
            logger.info(f"Sampled {X.shape[0]} points of f(x) = exp(x) - x^3 on (-2, 2)")
        elif task == 'classification':
            X, labels = self.load_digits_data()
            y = onehot_batch(labels, self.config['num_classes']).T
        else:
            raise ValueError(f"Unknown task: {task}")

        X_train, X_test, y_train, y_test = train_test_split(
            X, y,
            train_size=self.config['train_size'],
            random_state=self.config.get('random_state')
        )

        # Samples on the last axis from here on
        self.train_data = (X_train.T, y_train.T)
        self.test_data = (X_test.T, y_test.T)
        logger.info(f"Train samples: {X_train.shape[0]} | Test samples: {X_test.shape[0]}")

    def load_digits_data(self):
        """
        Pixel intensities scaled to [0, 1] and integer labels.

        Reads a CSV with one label column (config 'target') and one column per
        pixel if 'data_path' is set, otherwise uses scikit-learn's bundled
        8x8 digits.
        ---
        Returns:
            X_array, y_array (tuple): numpy arrays of shape (N, pixels) and (N,)
        """
        data_path = self.config.get('data_path')

        if data_path:
            df = pd.read_csv(data_path)
            X = df.drop(columns=[self.config['target']])
            y = df[self.config['target']]
            X_array = X.values.astype(np.float64) / self.config['pixel_scale']
            y_array = y.values.astype(int)
            logger.info(f"Loaded {len(df)} images from {data_path}")
        else:
            digits = load_digits()
            # 8x8 digits use intensities 0..16
            X_array = digits.data.astype(np.float64) / 16.0
            y_array = digits.target.astype(int)
            logger.info(f"Loaded {X_array.shape[0]} images from scikit-learn digits")

        return X_array, y_array

    def create_train_dataloader(self):
        """
        Create Training BatchLoader for training dataset
        """
        return BatchLoader(
            *self.train_data,
            batch_size=self.config['train_batch_size'],
            shuffle=True,
            drop_last=self.config['drop_last'],
            rng=self.rng
        )

    def create_test_dataloader(self):
        """
        Single batch holding the whole test dataset
        """
        return BatchLoader(
            *self.test_data,
            batch_size=self.test_data[0].shape[-1],
            shuffle=False,
            drop_last=False
        )
