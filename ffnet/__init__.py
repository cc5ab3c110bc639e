from .activations import sigmoid, tanh, relu, softplus, identity, softmax
from .data import BatchLoader, DataPipeline, onehot_batch, onecold
from .gradients import Backpropagation, TorchAutograd
from .layers import DenseLayer, neuron, feedforward
from .losses import MeanSquaredError, CrossEntropy
from .metrics import accuracy, classify
from .network import Network
from .optimizers import Adam, Descent
from .pipeline import ModelPipeline, load_config
from .training import Trainer
