import unittest

from stake_fixtures import METANODE, STAKE_TOKEN_2, StakeTestCase, find_events


class TestAccessControl(StakeTestCase):

    # Role Registry Tests
    def test_deployer_roles(self):
        """Test the deployer holds every role"""
        for role in ('default_admin', 'admin', 'upgrade'):
            self.assertTrue(self.acl.has_role(role=role, account=self.owner, signer=self.owner))

        self.assertFalse(self.acl.has_role(role='admin', account=self.stranger, signer=self.owner))
        self.assertEqual(self.acl.get_role_admin(role='admin', signer=self.owner), 'default_admin')

    def test_grant_and_revoke_role(self):
        """Test role grants and revocations emit events"""
        result = self.acl.grant_role(
            role='upgrade', account=self.user1, signer=self.owner, return_full_output=True
        )
        self.assertTrue(self.acl.has_role(role='upgrade', account=self.user1, signer=self.owner))

        event = find_events(result, 'RoleGranted')[0]
        self.assertEqual(event['role'], 'upgrade')
        self.assertEqual(event['account'], self.user1)
        self.assertEqual(event['sender'], self.owner)

        result = self.acl.revoke_role(
            role='upgrade', account=self.user1, signer=self.owner, return_full_output=True
        )
        self.assertFalse(self.acl.has_role(role='upgrade', account=self.user1, signer=self.owner))
        self.assertEqual(find_events(result, 'RoleRevoked')[0]['account'], self.user1)

    def test_grant_role_requires_role_admin(self):
        """Test only the role admin can grant or revoke"""
        with self.assertRaises(AssertionError) as context:
            self.acl.grant_role(role='admin', account=self.user1, signer=self.stranger)
        self.assertIn("missing role default_admin", str(context.exception))

        with self.assertRaises(AssertionError) as context:
            self.acl.revoke_role(role='admin', account=self.admin, signer=self.stranger)
        self.assertIn("missing role default_admin", str(context.exception))

        self.assertFalse(self.acl.has_role(role='admin', account=self.user1, signer=self.owner))
        self.assertTrue(self.acl.has_role(role='admin', account=self.admin, signer=self.owner))

    def test_renounce_role(self):
        """Test accounts can drop their own roles"""
        self.acl.renounce_role(role='admin', signer=self.admin)
        self.assertFalse(self.acl.has_role(role='admin', account=self.admin, signer=self.owner))

        with self.assertRaises(AssertionError):
            self.acl.renounce_role(role='admin', signer=self.admin)

    def test_set_role_admin(self):
        """Test a role can be delegated to another admin role"""
        self.acl.set_role_admin(role='upgrade', admin_role='admin', signer=self.owner)
        self.assertEqual(self.acl.get_role_admin(role='upgrade', signer=self.owner), 'admin')

        self.acl.grant_role(role='upgrade', account=self.user2, signer=self.admin)
        self.assertTrue(self.acl.has_role(role='upgrade', account=self.user2, signer=self.owner))

    def test_require_role(self):
        """Test the capability check used by the ledger"""
        self.acl.require_role(role='admin', account=self.admin, signer=self.owner)

        with self.assertRaises(AssertionError) as context:
            self.acl.require_role(role='admin', account=self.user3, signer=self.owner)
        self.assertIn(f"account {self.user3} is missing role admin", str(context.exception))

    # Ledger Gating Tests
    def test_admin_operations_reject_strangers(self):
        """Test management calls fail without the admin role"""
        self.add_default_pools()

        calls = [
            lambda: self.staking.add_pool(
                asset_kind='token', token_contract=STAKE_TOKEN_2, pool_weight=100,
                min_deposit_amount=10, unstake_lock_blocks=20,
                signer=self.stranger, environment=self.env(5)
            ),
            lambda: self.staking.set_pool_weight(pool_id=1, pool_weight=5, signer=self.stranger),
            lambda: self.staking.update_pool_info(
                pool_id=1, min_deposit_amount=1, unstake_lock_blocks=1, signer=self.stranger
            ),
            lambda: self.staking.set_reward_per_block(metanode_per_block=1, signer=self.stranger),
            lambda: self.staking.set_reward_token(reward_token_contract=STAKE_TOKEN_2, signer=self.stranger),
            lambda: self.staking.pause_global(pause=True, signer=self.stranger),
            lambda: self.staking.pause_staking(pause=True, signer=self.stranger),
            lambda: self.staking.pause_unstaking(pause=True, signer=self.stranger),
            lambda: self.staking.pause_withdraw(pause=True, signer=self.stranger),
            lambda: self.staking.pause_claim(pause=True, signer=self.stranger),
            lambda: self.staking.set_paused_states(
                staking_paused=True, unstaking_paused=True, withdraw_paused=True, claim_paused=True, signer=self.stranger
            ),
        ]

        for call in calls:
            with self.assertRaises(AssertionError) as context:
                call()
            self.assertIn("missing role admin", str(context.exception))

        status = self.staking.get_contract_status(signer=self.owner)
        self.assertEqual(status['total_pools'], 2)
        self.assertEqual(status['total_pool_weight'], 200)
        self.assertEqual(status['reward_per_block'], 100)
        self.assertEqual(status['reward_token'], METANODE)

        states = self.staking.get_paused_states(signer=self.owner)
        self.assertFalse(any(states.values()))

    def test_granted_admin_can_manage(self):
        """Test a newly granted admin can pause the ledger"""
        self.acl.grant_role(role='admin', account=self.user1, signer=self.owner)
        self.staking.pause_claim(pause=True, signer=self.user1)
        self.assertTrue(self.staking.get_paused_states(signer=self.owner)['claim'])

    def test_revoked_admin_loses_access(self):
        """Test revocation takes effect on the next call"""
        self.staking.pause_staking(pause=True, signer=self.admin)
        self.acl.revoke_role(role='admin', account=self.admin, signer=self.owner)

        with self.assertRaises(AssertionError) as context:
            self.staking.pause_staking(pause=False, signer=self.admin)
        self.assertIn("missing role admin", str(context.exception))
        self.assertTrue(self.staking.get_paused_states(signer=self.owner)['staking'])

    def test_upgrade_role_is_not_admin(self):
        """Test the upgrade role alone cannot manage pools"""
        self.acl.grant_role(role='upgrade', account=self.user2, signer=self.owner)

        with self.assertRaises(AssertionError) as context:
            self.staking.pause_global(pause=True, signer=self.user2)
        self.assertIn("missing role admin", str(context.exception))


if __name__ == '__main__':
    unittest.main()
