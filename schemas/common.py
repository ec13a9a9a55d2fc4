from signals import SignalModel, SignalStr

# Largest value a 64-bit INTEGER column stores; money fields are capped here
MAX_AMOUNT = 2**63 - 1


class ModeParams(SignalModel):
    # "single" when the mutation came from a record's own page
    mode: SignalStr = ""

    @property
    def single(self) -> bool:
        return self.mode == "single"
