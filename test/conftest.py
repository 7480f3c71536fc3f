"""
Shared fixtures for the launch pipeline tests
"""

from unittest.mock import Mock, AsyncMock

import base58
import pytest
from solders.hash import Hash
from solders.keypair import Keypair

from launchmint.models import LaunchResult, Platform


@pytest.fixture
def creator():
    return Keypair()


@pytest.fixture
def credential(creator):
    """Base58 secret key of the creator"""
    return base58.b58encode(bytes(creator)).decode()


@pytest.fixture
def payload(credential):
    """A valid create request for PumpFun"""
    return {
        'platform': 'pumpfun',
        'name': 'Test Token',
        'symbol': 'TEST',
        'image': 'https://example.com/token.png',
        'description': 'A test token',
        'signingCredential': credential,
    }


@pytest.fixture
def rpc():
    rpc = Mock()
    rpc.get_latest_blockhash = AsyncMock(return_value=(Hash.default(), 1000))
    rpc.get_account_info = AsyncMock(return_value=b'\x00' * 64)
    rpc.get_token_balance = AsyncMock(return_value=0.0)
    rpc.get_block_height = AsyncMock(return_value=10)
    rpc.get_signature_statuses = AsyncMock(return_value=[{'confirmationStatus': 'confirmed', 'err': None}])
    rpc.send_raw_transaction = AsyncMock(return_value='sig')
    return rpc


@pytest.fixture
def submitter():
    submitter = Mock()
    submitter.submit = AsyncMock(return_value='launch-sig')
    submitter.submit_serialized = AsyncMock(return_value='config-sig')
    return submitter


def make_result(platform: Platform = Platform.PUMPFUN, token_address: str = 'Mint111') -> LaunchResult:
    return LaunchResult(
        platform=platform,
        token_address=token_address,
        tx_hash='launch-sig',
        url=platform.explorer_url(token_address),
        name='Test Token',
        symbol='TEST',
    )


@pytest.fixture
def launch_result():
    return make_result


@pytest.fixture
def launchers(launch_result):
    """One mock launcher per platform, each succeeding"""
    launchers = {}
    for platform in Platform:
        launcher = Mock()
        launcher.launch = AsyncMock(return_value=launch_result(platform))
        launchers[platform] = launcher
    return launchers
