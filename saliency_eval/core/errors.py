class SaliencyEvalError(Exception):
    pass


class LoadError(SaliencyEvalError):
    """An image, mask or cached map for one dataset entry could not be read."""

    def __init__(self, image_id: str, index: int, path: str, reason: str = "unreadable"):
        self.image_id = image_id
        self.index = index
        self.path = path
        self.reason = reason
        super().__init__(f"[{index}:{image_id}] failed to load {path} ({reason})")

    # Raised inside worker processes, so it has to survive pickling.
    def __reduce__(self):
        return (type(self), (self.image_id, self.index, self.path, self.reason))


class DegenerateInputError(SaliencyEvalError):
    """The saliency map has no positive mass, so no adaptive threshold exists."""

    def __init__(self, image_id: str = "", index: int = -1, detail: str = ""):
        self.image_id = image_id
        self.index = index
        self.detail = detail
        msg = f"[{index}:{image_id}] degenerate saliency map"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)

    def __reduce__(self):
        return (type(self), (self.image_id, self.index, self.detail))


class EmptyDatasetError(SaliencyEvalError):
    pass


class ShapeMismatchError(SaliencyEvalError):
    """The predicted map and the ground-truth mask of one entry differ in size."""

    def __init__(self, image_id: str, index: int, sal_shape: tuple, gt_shape: tuple):
        self.image_id = image_id
        self.index = index
        self.sal_shape = tuple(sal_shape)
        self.gt_shape = tuple(gt_shape)
        super().__init__(
            f"[{index}:{image_id}] saliency map {self.sal_shape} does not match ground truth {self.gt_shape}"
        )

    def __reduce__(self):
        return (type(self), (self.image_id, self.index, self.sal_shape, self.gt_shape))
