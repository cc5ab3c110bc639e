class ShapeMismatchError(ValueError):
    """Raised when array dimensions do not line up (layer inputs, layer chains, gradients)."""


class NumericDomainError(ArithmeticError):
    """Raised when a value falls outside the domain of a loss or activation."""


class TrainingDivergedError(RuntimeError):
    """
    Raised by the training loop as soon as a batch loss or gradient is NaN or infinite.
    ---
    Args:
        epoch (int): 1-based epoch in which the loss diverged
        batch (int): 1-based batch index within that epoch
        loss (float): Loss of the offending batch
        what (str): Which quantity became non-finite, 'loss' or 'gradient'
    """
    def __init__(self, epoch, batch, loss, what='loss'):
        self.epoch = epoch
        self.batch = batch
        self.loss = loss
        self.what = what
        super().__init__(f"{what.capitalize()} became non-finite (loss {loss}) at epoch {epoch}, batch {batch}")
