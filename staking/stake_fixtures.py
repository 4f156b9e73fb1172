import os
import unittest

from contracting.client import ContractingClient

HERE = os.path.dirname(os.path.abspath(__file__))

STAKING = 'con_metanode_stake'
ACCESS_CONTROL = 'con_access_control'
NATIVE_COIN = 'con_currency'
METANODE = 'con_metanode'
STAKE_TOKEN = 'con_stake_token'
STAKE_TOKEN_2 = 'con_stake_token_2'

METANODE_PER_BLOCK = 100
REWARD_RESERVE = 500000
USER_FUNDS = 10000


def read_contract(filename):
    with open(os.path.join(HERE, filename)) as f:
        return f.read()


def event_fields(event):
    """Flatten the indexed and plain data of an emitted event."""
    fields = dict(event.get('data_indexed') or {})
    fields.update(event.get('data') or {})
    return fields


def find_events(result, name):
    return [event_fields(e) for e in result['events'] if e['event'] == name]


class StakeTestCase(unittest.TestCase):
    """Deploys the access control, token and staking contracts for each test.

    Pools are not created here; suites call `add_default_pools` when they
    need the native pool 0 and the token pool 1.
    """

    def setUp(self):
        self.client = ContractingClient()
        self.client.flush()

        self.owner = 'sys'
        self.admin = 'admin_account'
        self.user1 = 'user1'
        self.user2 = 'user2'
        self.user3 = 'user3'
        self.stranger = 'stranger'

        self.client.submit(read_contract('con_access_control.py'), name=ACCESS_CONTROL)

        token_code = read_contract('con_test_token.py')
        for name in (NATIVE_COIN, METANODE, STAKE_TOKEN, STAKE_TOKEN_2):
            self.client.submit(token_code, name=name)

        self.client.submit(
            read_contract('con_metanode_stake.py'),
            name=STAKING,
            constructor_args={
                'reward_token_contract': METANODE,
                'metanode_per_block': METANODE_PER_BLOCK,
                'access_control_contract': ACCESS_CONTROL,
                'native_token_contract': NATIVE_COIN
            }
        )

        self.acl = self.client.get_contract(ACCESS_CONTROL)
        self.staking = self.client.get_contract(STAKING)
        self.native = self.client.get_contract(NATIVE_COIN)
        self.metanode = self.client.get_contract(METANODE)
        self.stake_token = self.client.get_contract(STAKE_TOKEN)
        self.stake_token_2 = self.client.get_contract(STAKE_TOKEN_2)

        self.acl.grant_role(role='admin', account=self.admin, signer=self.owner)

        for user in (self.user1, self.user2, self.user3):
            for token in (self.native, self.stake_token, self.stake_token_2):
                token.transfer(amount=USER_FUNDS, to=user, signer=self.owner)
                token.approve(amount=USER_FUNDS, to=STAKING, signer=user)

        self.metanode.transfer(amount=REWARD_RESERVE, to=STAKING, signer=self.owner)

    def tearDown(self):
        self.client.flush()

    def env(self, block):
        return {"block_num": block}

    def add_default_pools(self, block=1, native_weight=100, token_weight=100,
                          min_deposit=10, lock_blocks=20):
        self.staking.add_pool(
            asset_kind='native',
            pool_weight=native_weight,
            min_deposit_amount=min_deposit,
            unstake_lock_blocks=lock_blocks,
            signer=self.admin,
            environment=self.env(block)
        )
        self.staking.add_pool(
            asset_kind='token',
            token_contract=STAKE_TOKEN,
            pool_weight=token_weight,
            min_deposit_amount=min_deposit,
            unstake_lock_blocks=lock_blocks,
            signer=self.admin,
            environment=self.env(block)
        )

    def stake(self, user, pool_id, amount, block, **kwargs):
        fn = self.staking.stake_native if pool_id == 0 else self.staking.stake_token
        return fn(pool_id=pool_id, amount=amount, signer=user, environment=self.env(block), **kwargs)

    def pool(self, pool_id):
        return self.staking.get_pool(pool_id=pool_id, signer=self.owner)

    def user_info(self, pool_id, user):
        return self.staking.get_user(pool_id=pool_id, user=user, signer=self.owner)

    def pending(self, pool_id, user, block):
        return self.staking.pending_reward(
            pool_id=pool_id, user=user, signer=self.owner, environment=self.env(block)
        )

    def assert_conservation(self, pool_id, users):
        total = sum(self.user_info(pool_id, u)['amount'] for u in users)
        self.assertEqual(self.pool(pool_id)['total_staked'], total)
