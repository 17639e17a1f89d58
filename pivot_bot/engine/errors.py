"""Exceptions raised by the conversation engine."""


class ConfigurationError(Exception):
    """The state table or one of its registries is inconsistent."""

    def __init__(self, problems):
        if isinstance(problems, str):
            problems = [problems]
        self.problems = list(problems)
        super().__init__("Invalid state configuration:\n- " + "\n- ".join(self.problems))


class UnknownState(ConfigurationError):
    def __init__(self, state_id):
        self.state_id = state_id
        super().__init__([f"unknown state: {state_id}"])
