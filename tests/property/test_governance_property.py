"""
Property-based tests for governance system using Hypothesis.

This module tests governance invariants and properties using property-based
testing to ensure correctness under arbitrary sequences of operations.
"""

import logging

logger = logging.getLogger(__name__)
from hypothesis import example, given, settings, strategies as st
from hypothesis.stateful import RuleBasedStateMachine, invariant, rule

from venturedao.errors.exceptions import VentureDAOError
from venturedao.governance import (
    BASIS_POINTS,
    DAY,
    TYPE_TO_CATEGORY,
    GovernanceConfig,
    GovernanceEngine,
    InMemoryLedger,
    ManualClock,
    ProposalType,
    TreasuryCategory,
    VoteChoice,
    VotingPowerModel,
    evaluate_outcome,
    integer_sqrt,
)

ADMIN = "0xadmin"
PRINCIPALS = ["0xa", "0xb", "0xc", "0xd"]

basis_points = st.integers(min_value=0, max_value=BASIS_POINTS)
weights = st.integers(min_value=0, max_value=10**9)


class TestVotingPowerProperties:
    """Property-based tests for the voting power model."""

    @given(st.integers(min_value=0, max_value=10**40))
    @example(0)
    @example(1)
    @example(10**17)
    def test_integer_sqrt_is_floor(self, x):
        """Test the root is the largest integer whose square fits."""
        root = integer_sqrt(x)
        assert root * root <= x < (root + 1) * (root + 1)

    @given(st.integers(min_value=0, max_value=10**30))
    def test_power_matches_scaled_root(self, stake):
        """Test power is the floor root of stake times the coefficient."""
        assert VotingPowerModel().power(stake) == integer_sqrt(stake * 100)

    @given(
        st.integers(min_value=0, max_value=10**24),
        st.integers(min_value=0, max_value=10**24),
    )
    def test_power_is_monotonic(self, a, b):
        """Test more stake never means less power."""
        model = VotingPowerModel()
        low, high = sorted((a, b))
        assert model(low) <= model(high)

    @given(
        st.integers(min_value=1, max_value=10**12),
        st.integers(min_value=1, max_value=10**12),
    )
    def test_power_is_subadditive(self, a, b):
        """Test splitting stake never loses power."""
        model = VotingPowerModel()
        assert model(a + b) <= model(a) + model(b)


class TestOutcomeProperties:
    """Property-based tests for quorum and approval evaluation."""

    @given(weights, weights, weights, weights, basis_points, basis_points)
    def test_passed_matches_thresholds(
        self, for_votes, against, abstain, extra, quorum, approval
    ):
        """Test the verdict agrees with the threshold arithmetic."""
        total_power = for_votes + against + abstain + extra
        outcome = evaluate_outcome(for_votes, against, abstain, total_power, quorum, approval)

        quorum_met = for_votes + against + abstain >= total_power * quorum // BASIS_POINTS
        decisive = for_votes + against
        expected = (
            quorum_met and decisive > 0 and for_votes * BASIS_POINTS >= approval * decisive
        )

        assert outcome.passed == expected
        assert outcome.quorum_reached == quorum_met

    @given(weights, weights, weights, weights, weights, basis_points, basis_points)
    def test_abstention_never_defeats(
        self, for_votes, against, abstain, more, extra, quorum, approval
    ):
        """Test extra abstentions cannot turn a pass into a defeat."""
        total_power = for_votes + against + abstain + more + extra
        before = evaluate_outcome(for_votes, against, abstain, total_power, quorum, approval)
        after = evaluate_outcome(for_votes, against, abstain + more, total_power, quorum, approval)

        if before.passed:
            assert after.passed

    @given(weights, weights, weights, basis_points)
    def test_no_decisive_votes_never_passes(self, abstain, extra, quorum, approval):
        """Test abstentions alone never pass a proposal."""
        outcome = evaluate_outcome(0, 0, abstain, abstain + extra, quorum, approval)
        assert not outcome.passed


class GovernanceStateMachine(RuleBasedStateMachine):
    """State machine driving the engine with arbitrary operation sequences."""

    def __init__(self):
        super().__init__()
        self.clock = ManualClock(start=1_700_000_000)
        self.ledger = InMemoryLedger()
        self.engine = GovernanceEngine(
            ADMIN,
            config=GovernanceConfig(minimum_stake_to_propose=1),
            clock=self.clock,
            transfer=self.ledger,
        )
        self.power_model = VotingPowerModel()
        self.total_joined = 0

    def _observe(self):
        return self.engine.get_statistics(), len(self.engine.audit_trail)

    def _attempt(self, operation):
        """Run an operation; rejected operations must leave no trace."""
        before = self._observe()
        try:
            return operation()
        except VentureDAOError:
            assert self._observe() == before
            return None

    @rule(principal=st.sampled_from(PRINCIPALS), amount=st.integers(min_value=0, max_value=10**6))
    def join(self, principal, amount):
        if self._attempt(lambda: self.engine.join(principal, amount)) is not None:
            self.total_joined += amount

    @rule(principal=st.sampled_from(PRINCIPALS), amount=st.integers(min_value=1, max_value=10**6))
    def withdraw(self, principal, amount):
        self._attempt(lambda: self.engine.withdraw(principal, amount))

    @rule(delegator=st.sampled_from(PRINCIPALS), delegatee=st.sampled_from(PRINCIPALS))
    def delegate(self, delegator, delegatee):
        self._attempt(lambda: self.engine.delegate(delegator, delegatee))

    @rule(delegator=st.sampled_from(PRINCIPALS))
    def revoke_delegation(self, delegator):
        self._attempt(lambda: self.engine.revoke_delegation(delegator))

    @rule(
        category=st.sampled_from(list(TreasuryCategory)),
        amount=st.integers(min_value=0, max_value=10**6),
    )
    def deposit(self, category, amount):
        self._attempt(lambda: self.engine.deposit(category, amount, depositor="0xlp"))

    @rule(
        proposer=st.sampled_from(PRINCIPALS),
        proposal_type=st.sampled_from(list(ProposalType)),
        amount=st.integers(min_value=1, max_value=10**6),
    )
    def propose(self, proposer, proposal_type, amount):
        proposal_id = self._attempt(
            lambda: self.engine.create_proposal(
                proposer,
                "0xrecipient",
                amount,
                "Funding round",
                proposal_type,
                TYPE_TO_CATEGORY[proposal_type],
            )
        )
        if proposal_id is not None:
            self._attempt(lambda: self.engine.activate_proposal(proposal_id, proposer))

    @rule(
        proposal_id=st.integers(min_value=1, max_value=6),
        voter=st.sampled_from(PRINCIPALS),
        choice=st.sampled_from(list(VoteChoice)),
    )
    def vote(self, proposal_id, voter, choice):
        self._attempt(lambda: self.engine.cast_vote(proposal_id, voter, choice))

    @rule(seconds=st.integers(min_value=0, max_value=4 * DAY))
    def advance_time(self, seconds):
        self.clock.advance(seconds)

    @rule(proposal_id=st.integers(min_value=1, max_value=6))
    def resolve(self, proposal_id):
        self._attempt(lambda: self.engine.resolve_proposal(proposal_id))

    @rule(proposal_id=st.integers(min_value=1, max_value=6))
    def execute(self, proposal_id):
        self._attempt(lambda: self.engine.execute_proposal(proposal_id, ADMIN))

    @rule(proposal_id=st.integers(min_value=1, max_value=6))
    def cancel(self, proposal_id):
        self._attempt(lambda: self.engine.cancel_proposal(proposal_id, ADMIN))

    @rule()
    def toggle_pause(self):
        if self.engine.is_paused:
            self._attempt(lambda: self.engine.unpause(ADMIN))
        else:
            self._attempt(lambda: self.engine.pause(ADMIN, "drill"))

    @rule(failing=st.booleans())
    def set_transfer_failure(self, failing):
        self.ledger.fail_with = ConnectionError("unreachable") if failing else None

    @invariant()
    def delegation_is_consistent(self):
        """Delegated power received matches the delegation edges."""
        assert self.engine.verify_consistency()
        for principal in PRINCIPALS:
            delegatee = self.engine.delegate_of(principal)
            if delegatee is not None:
                assert principal in self.engine.delegators_of(delegatee)
                assert delegatee != principal

    @invariant()
    def power_follows_stake(self):
        """Every power is the model applied to the stake and totals agree."""
        stakes = {principal: self.engine.stake_of(principal) for principal in PRINCIPALS}
        powers = {principal: self.engine.voting_power(principal) for principal in PRINCIPALS}

        for principal in PRINCIPALS:
            assert powers[principal] == self.power_model(stakes[principal])
        assert self.engine.total_staked() == sum(stakes.values())
        assert self.engine.total_voting_power() == sum(powers.values())
        delegated = sum(
            powers[principal]
            for principal in PRINCIPALS
            if self.engine.delegate_of(principal) is not None
        )
        assert sum(self.engine.effective_power(p) for p in PRINCIPALS) == (
            self.engine.total_voting_power() + delegated
        )

    @invariant()
    def treasury_is_conserved(self):
        """Balances equal deposits minus disbursements and never go negative."""
        treasury = self.engine.get_statistics()["treasury"]

        net = treasury["total_deposited"] - treasury["total_disbursed"]
        assert treasury["total_balance"] == net
        for category in TreasuryCategory:
            assert self.engine.treasury_balance(category) >= 0

    @invariant()
    def value_is_conserved(self):
        """Everything sent out is either a refunded stake or a disbursement."""
        disbursed = self.engine.get_statistics()["treasury"]["total_disbursed"]
        refunded = self.total_joined - self.engine.total_staked()

        assert self.ledger.total_transferred() == refunded + disbursed

    @invariant()
    def audit_trail_is_intact(self):
        assert self.engine.verify_audit_integrity()


GovernanceStateMachine.TestCase.settings = settings(
    max_examples=25, stateful_step_count=40, deadline=None
)

# Register the state machine test
TestGovernanceStateMachine = GovernanceStateMachine.TestCase
