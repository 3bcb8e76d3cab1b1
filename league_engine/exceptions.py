from .models.enums import RoundStatus


class LeagueEngineError(RuntimeError):
    pass


class EntityNotFoundError(LeagueEngineError):
    """Raised when a referenced round, league, season or member does not exist."""

    def __init__(self, name: str, key):
        self.name = name
        self.key = key
        super().__init__(f'{name} with key "{key}" was not found.')


class SettlementError(LeagueEngineError):
    """Raised when settling a round fails part-way through a season walk."""

    def __init__(self, round_id: int, round_number: int, cause: Exception):
        self.round_id = round_id
        self.round_number = round_number
        self.cause = cause
        super().__init__(f"Settlement of round {round_number} (id={round_id}) failed: {cause}")


class RoundNotCompletedError(LeagueEngineError):
    """Raised when prizes are requested for a round whose matches are still being played."""

    def __init__(self, round_id: int, round_number: int, status):
        self.round_id = round_id
        self.round_number = round_number
        self.status = status
        super().__init__(f"Round {round_number} (id={round_id}) is {RoundStatus(status).value}, not Completed.")
