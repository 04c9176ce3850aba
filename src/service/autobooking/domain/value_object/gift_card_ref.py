import attrs


@attrs.define(frozen=True)
class GiftCardRef:
    """Opaque reference to a stored gift card; resolved to credentials only at payment time."""

    card_id: str


@attrs.define(frozen=True)
class GiftCardCredential:
    card_id: str
    card_number: str = attrs.field(repr=False)
    pin: str = attrs.field(repr=False)

    @property
    def masked_number(self) -> str:
        return f'****{self.card_number[-4:]}' if len(self.card_number) >= 4 else '****'
