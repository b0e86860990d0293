"""
Tests for creating stake positions.
"""
from dataclasses import FrozenInstanceError

import pytest

from ldstake.core.contracts import (
    ERC20InsufficientAllowanceError,
    ERC20InsufficientBalanceError,
    InvalidAmountError,
    StakeNotFoundError,
    StakingNotStartedError,
)
from staking_helpers import ADDR1, ADDR2, ADDR3, E18, OWNER, START_TIME, USER_FUNDING, stake


class TestStakeLd:
    """Test stake_ld."""

    def test_stake_before_enable_fails(self, deployment):
        deployment.token.approve(ADDR1, deployment.staking.address, 2_000 * E18)

        with pytest.raises(StakingNotStartedError):
            deployment.staking.stake_ld(ADDR1, 2_000 * E18)

        assert deployment.staking.total_staked_amount == 0
        assert deployment.token.balance_of(ADDR1) == USER_FUNDING

    def test_stake_creates_position(self, deployment):
        deployment.staking.enable_staking(OWNER)

        index = stake(deployment, ADDR1, 2_000 * E18)

        assert index == 0
        position = deployment.staking.get_user_stake(ADDR1, 0)
        assert position.staked_amount == 2_000 * E18
        assert position.last_claimed == START_TIME
        assert deployment.staking.total_staked_amount == 2_000 * E18
        assert deployment.token.balance_of(ADDR1) == USER_FUNDING - 2_000 * E18
        assert deployment.token.balance_of(deployment.staking.address) == 2_000 * E18

    def test_stake_emits_staked(self, live_deployment):
        stake(live_deployment, ADDR1, 500 * E18)

        (event,) = live_deployment.staking.events_named("Staked")
        assert event.args == {"account": ADDR1.lower(), "amount": 500 * E18}
        assert event.timestamp == START_TIME

    def test_each_stake_appends_a_position(self, live_deployment):
        """Test that repeat stakes never merge into an existing position."""
        first = stake(live_deployment, ADDR1, 100 * E18)
        live_deployment.clock.increase(3 * 86_400)
        second = stake(live_deployment, ADDR1, 300 * E18)

        assert (first, second) == (0, 1)
        assert live_deployment.staking.stake_count(ADDR1) == 2
        positions = live_deployment.staking.stakes_of(ADDR1)
        assert [p.staked_amount for p in positions] == [100 * E18, 300 * E18]
        assert positions[1].last_claimed == START_TIME + 3 * 86_400
        assert live_deployment.staking.total_staked_amount == 400 * E18

    def test_positions_are_per_account(self, live_deployment):
        stake(live_deployment, ADDR1, 100 * E18)
        stake(live_deployment, ADDR2, 200 * E18)

        assert live_deployment.staking.get_user_stake(ADDR2, 0).staked_amount == 200 * E18
        assert live_deployment.staking.stake_count(ADDR3) == 0
        assert live_deployment.staking.stakes_of(ADDR3) == []
        assert live_deployment.staking.total_staked_amount == 300 * E18

    @pytest.mark.parametrize("amount", [0, -1])
    def test_invalid_amount_rejected(self, live_deployment, amount):
        with pytest.raises(InvalidAmountError, match="Invalid amount"):
            live_deployment.staking.stake_ld(ADDR1, amount)

    def test_stake_without_approval_fails(self, live_deployment):
        with pytest.raises(ERC20InsufficientAllowanceError):
            live_deployment.staking.stake_ld(ADDR1, 10 * E18)

        assert live_deployment.staking.stake_count(ADDR1) == 0

    def test_stake_more_than_balance_fails(self, live_deployment):
        """Test that a failed pull leaves no position and no allowance spent."""
        live_deployment.token.approve(ADDR3, live_deployment.staking.address, 10 * E18)

        with pytest.raises(ERC20InsufficientBalanceError):
            live_deployment.staking.stake_ld(ADDR3, 10 * E18)

        assert live_deployment.staking.stake_count(ADDR3) == 0
        assert live_deployment.staking.total_staked_amount == 0
        assert live_deployment.token.allowance(ADDR3, live_deployment.staking.address) == 10 * E18

    def test_existing_positions_survive_disable(self, live_deployment):
        stake(live_deployment, ADDR1, 100 * E18)
        live_deployment.staking.disable_staking(OWNER)

        with pytest.raises(StakingNotStartedError):
            stake(live_deployment, ADDR1, 100 * E18)

        assert live_deployment.staking.get_user_stake(ADDR1, 0).staked_amount == 100 * E18


class TestViews:

    def test_missing_position(self, live_deployment):
        with pytest.raises(StakeNotFoundError):
            live_deployment.staking.get_user_stake(ADDR1, 0)

    def test_views_cannot_edit_positions(self, live_deployment):
        stake(live_deployment, ADDR1, 100 * E18)

        position = live_deployment.staking.get_user_stake(ADDR1, 0)
        with pytest.raises(FrozenInstanceError):
            position.staked_amount = 0
        live_deployment.staking.stakes_of(ADDR1).clear()

        assert live_deployment.staking.get_user_stake(ADDR1, 0).staked_amount == 100 * E18
        assert live_deployment.staking.stake_count(ADDR1) == 1

    def test_bool_is_not_a_position_index(self, live_deployment):
        stake(live_deployment, ADDR1, 100 * E18)
        stake(live_deployment, ADDR1, 200 * E18)

        with pytest.raises(StakeNotFoundError):
            live_deployment.staking.get_user_stake(ADDR1, True)
        with pytest.raises(StakeNotFoundError):
            live_deployment.staking.next_claim_time(ADDR1, False)

    def test_next_claim_time(self, live_deployment):
        stake(live_deployment, ADDR1, 100 * E18)

        assert live_deployment.staking.next_claim_time(ADDR1, 0) == START_TIME + 7 * 86_400

    def test_pending_rewards_tracks_clock(self, live_deployment):
        stake(live_deployment, ADDR1, 10_000 * E18)

        assert live_deployment.staking.pending_rewards(ADDR1, 0).amount == 0

        live_deployment.clock.increase(21 * 86_400)
        quote = live_deployment.staking.pending_rewards(ADDR1, 0)

        assert quote.weeks == 3
        assert quote.amount == 288461538461538461538
