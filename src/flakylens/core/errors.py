class FlakyLensError(Exception):
    pass


class InsufficientDataError(FlakyLensError):
    def __init__(self, test_id: str, found: int, required: int) -> None:
        self.test_id = test_id
        self.found = found
        self.required = required
        super().__init__(
            f"{test_id}: only {found} execution(s), need at least {required}"
        )


class StoreUnavailableError(FlakyLensError):
    pass
