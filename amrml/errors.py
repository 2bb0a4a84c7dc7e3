class ConfigurationError(ValueError):
    """Invalid input layout or option; fatal and raised before fitting."""


class SchemaMismatchError(ValueError):
    """Columns handed to a fitted recipe differ from the training schema."""


class FitError(RuntimeError):
    """A fit failed; carries the step and grid entry it failed on."""

    def __init__(self, message, step=None, grid_index=None, params=None):
        self.step = step
        self.grid_index = grid_index
        self.params = dict(params) if params else {}
        context = []
        if step:
            context.append(f"step={step}")
        if grid_index is not None:
            context.append(f"grid_index={grid_index}")
        if self.params:
            context.append(f"params={self.params}")
        if context:
            message = f"{message} ({', '.join(context)})"
        super().__init__(message)
