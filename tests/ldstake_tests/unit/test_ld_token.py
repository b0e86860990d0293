"""
Tests for the LD token value-transfer rail.

Covers balances, allowances, minting and burning, and that failed calls
leave no partial state behind.
"""
import pytest

from ldstake import Chain, LdToken, ManualClock
from ldstake.core.contracts import (
    ZERO_ADDRESS,
    ERC20InsufficientAllowanceError,
    ERC20InsufficientBalanceError,
    ERC20InvalidReceiverError,
    InvalidAmountError,
    OwnableInvalidOwnerError,
    OwnableUnauthorizedAccountError,
)
from ldstake.core.contracts.base import UINT256_MAX

E18 = 10**18


@pytest.fixture
def token():
    chain = Chain(clock=ManualClock())
    return LdToken(chain, owner="0xOwner", initial_supply=1_000_000 * E18)


class TestDeployment:
    """Test token construction."""

    def test_initial_supply_goes_to_owner(self, token):
        """Test that the whole initial supply is minted to the owner."""
        assert token.total_supply == 1_000_000 * E18
        assert token.balance_of("0xOwner") == 1_000_000 * E18
        assert token.name == "LD Token"
        assert token.symbol == "LD"
        assert token.decimals == 18

    def test_addresses_are_case_insensitive(self, token):
        assert token.balance_of("0XOWNER") == token.balance_of("0xowner")

    def test_mint_event_from_zero_address(self, token):
        (event,) = token.events_named("Transfer")
        assert event.args == {"sender": ZERO_ADDRESS, "recipient": "0xowner", "value": 1_000_000 * E18}

    def test_zero_owner_rejected(self):
        chain = Chain(clock=ManualClock())
        with pytest.raises(OwnableInvalidOwnerError):
            LdToken(chain, owner=ZERO_ADDRESS)

    def test_deployed_token_resolves_by_address(self, token):
        assert token.chain.resolve(token.address, LdToken) is token


class TestTransfer:
    """Test direct transfers."""

    def test_transfer_moves_balance(self, token):
        token.transfer("0xOwner", "0xAlice", 100 * E18)

        assert token.balance_of("0xAlice") == 100 * E18
        assert token.balance_of("0xOwner") == 999_900 * E18
        assert token.total_supply == 1_000_000 * E18

    def test_transfer_more_than_balance_fails(self, token):
        with pytest.raises(ERC20InsufficientBalanceError):
            token.transfer("0xAlice", "0xBob", 1)

    def test_transfer_to_zero_address_fails(self, token):
        with pytest.raises(ERC20InvalidReceiverError):
            token.transfer("0xOwner", ZERO_ADDRESS, 1)

    def test_zero_amount_transfer_is_allowed(self, token):
        assert token.transfer("0xOwner", "0xAlice", 0) is True
        assert token.balance_of("0xAlice") == 0

    def test_negative_amount_rejected(self, token):
        with pytest.raises(InvalidAmountError):
            token.transfer("0xOwner", "0xAlice", -1)


class TestAllowances:
    """Test approve/transferFrom."""

    def test_transfer_from_spends_allowance(self, token):
        token.approve("0xOwner", "0xSpender", 50 * E18)
        token.transfer_from("0xSpender", "0xOwner", "0xAlice", 20 * E18)

        assert token.allowance("0xOwner", "0xSpender") == 30 * E18
        assert token.balance_of("0xAlice") == 20 * E18

    def test_transfer_from_without_allowance_fails(self, token):
        with pytest.raises(ERC20InsufficientAllowanceError):
            token.transfer_from("0xSpender", "0xOwner", "0xAlice", 1)

    def test_unlimited_allowance_not_decremented(self, token):
        token.approve("0xOwner", "0xSpender", UINT256_MAX)
        token.transfer_from("0xSpender", "0xOwner", "0xAlice", 10 * E18)

        assert token.allowance("0xOwner", "0xSpender") == UINT256_MAX

    def test_failed_transfer_from_keeps_allowance(self, token):
        """Test that a balance failure does not consume the allowance."""
        token.approve("0xAlice", "0xSpender", 10 * E18)

        with pytest.raises(ERC20InsufficientBalanceError):
            token.transfer_from("0xSpender", "0xAlice", "0xBob", 10 * E18)

        assert token.allowance("0xAlice", "0xSpender") == 10 * E18

    def test_approve_zero_spender_fails(self, token):
        with pytest.raises(ERC20InvalidReceiverError):
            token.approve("0xOwner", ZERO_ADDRESS, 1)

    def test_increase_and_decrease_allowance(self, token):
        token.increase_allowance("0xOwner", "0xSpender", 5 * E18)
        token.increase_allowance("0xOwner", "0xSpender", 5 * E18)
        token.decrease_allowance("0xOwner", "0xSpender", 3 * E18)

        assert token.allowance("0xOwner", "0xSpender") == 7 * E18

        with pytest.raises(ERC20InsufficientAllowanceError):
            token.decrease_allowance("0xOwner", "0xSpender", 8 * E18)


class TestSupply:
    """Test minting and burning."""

    def test_only_owner_mints(self, token):
        with pytest.raises(OwnableUnauthorizedAccountError):
            token.mint("0xAlice", "0xAlice", E18)

        token.mint("0xOwner", "0xAlice", E18)
        assert token.balance_of("0xAlice") == E18
        assert token.total_supply == 1_000_001 * E18

    def test_burn_reduces_supply(self, token):
        token.burn("0xOwner", 1_000 * E18)

        assert token.total_supply == 999_000 * E18
        assert token.balance_of("0xOwner") == 999_000 * E18

    def test_burn_more_than_balance_fails(self, token):
        with pytest.raises(ERC20InsufficientBalanceError):
            token.burn("0xAlice", 1)


class TestSerialization:

    def test_round_trip_through_dict(self, token):
        token.approve("0xOwner", "0xSpender", 5 * E18)
        token.transfer("0xOwner", "0xAlice", 7 * E18)

        other_chain = Chain(clock=ManualClock())
        restored = LdToken.from_dict(other_chain, token.to_dict())

        assert restored.address == token.address
        assert restored.balance_of("0xAlice") == 7 * E18
        assert restored.allowance("0xOwner", "0xSpender") == 5 * E18
        assert restored.total_supply == token.total_supply
        assert len(restored.events) == len(token.events)
