"""
RewardManager payout contracts on Base.

- PayoutInitializer: the one-time `initialize(addresses, percentages)` call
  on a freshly claimed RewardManager. Signed with the pool operator key and
  awaited until mined; anything short of a successful receipt raises
  PayoutInitializationError.
- PayoutStatsReader: read-only views used by the user stats endpoint
  (supporter share, accrued earnings, coin balance).

The payout table invariants (equal lengths, non-negative, sum 10000) are
guaranteed by PayoutShareTable before anything reaches this module.
"""
import logging
from decimal import Decimal
from typing import List, Optional, Sequence

from web3 import AsyncWeb3, Web3

from config.database import ChainConfig
from services.errors import PayoutInitializationError

logger = logging.getLogger(__name__)

REWARD_MANAGER_ABI = [
    {
        "inputs": [
            {"internalType": "address[]", "name": "addresses", "type": "address[]"},
            {"internalType": "uint256[]", "name": "percentages", "type": "uint256[]"},
        ],
        "name": "initialize",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "address", "name": "", "type": "address"}],
        "name": "percentageShares",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "address", "name": "user", "type": "address"}],
        "name": "getUserEarnings",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]

ERC20_ABI = [
    {
        "inputs": [{"internalType": "address", "name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]


def create_web3(config: ChainConfig) -> AsyncWeb3:
    """Async web3 connection to the configured RPC."""
    return AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(config.rpc_url))


class PayoutInitializer:
    """Sends RewardManager.initialize and waits for it to be mined."""

    def __init__(self, w3: AsyncWeb3, private_key: str, tx_timeout: float = 120.0):
        if not private_key:
            raise ValueError("REWARD_MANAGER_PRIVATE_KEY is required to initialize payout contracts")
        self.w3 = w3
        self.account = w3.eth.account.from_key(private_key)
        self.tx_timeout = tx_timeout

    @classmethod
    def from_config(cls, config: ChainConfig, w3: Optional[AsyncWeb3] = None) -> 'PayoutInitializer':
        return cls(w3 or create_web3(config), config.private_key, config.tx_timeout)

    async def initialize(
        self,
        contract_address: str,
        addresses: Sequence[str],
        basis_points: Sequence[int],
    ) -> str:
        """
        Initialize a RewardManager with its payout table.

        Args:
            contract_address: Claimed RewardManager address
            addresses: Creator first, then supporters
            basis_points: Shares matching `addresses`, summing to 10000

        Returns:
            Transaction hash (0x-prefixed hex) of the mined transaction

        Raises:
            PayoutInitializationError: send failure, revert or receipt timeout
        """
        tx_hash = None
        try:
            contract = self.w3.eth.contract(
                address=Web3.to_checksum_address(contract_address),
                abi=REWARD_MANAGER_ABI,
            )
            payees: List[str] = [Web3.to_checksum_address(a) for a in addresses]

            nonce = await self.w3.eth.get_transaction_count(self.account.address, 'pending')
            tx = await contract.functions.initialize(payees, list(basis_points)).build_transaction({
                'from': self.account.address,
                'nonce': nonce,
            })
            signed = self.account.sign_transaction(tx)
            raw_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
            tx_hash = Web3.to_hex(raw_hash)
            logger.info(f"initialize tx sent to RewardManager {contract_address}: {tx_hash}")

            receipt = await self.w3.eth.wait_for_transaction_receipt(raw_hash, timeout=self.tx_timeout)
        except Exception as e:
            logger.error(f"Error initializing RewardManager {contract_address}: {e}")
            raise PayoutInitializationError(
                f"RewardManager {contract_address} initialize failed: {e}",
                tx_hash=tx_hash,
            ) from e

        if receipt.get('status') != 1:
            logger.error(f"initialize reverted on RewardManager {contract_address} (tx {tx_hash})")
            raise PayoutInitializationError(
                f"RewardManager {contract_address} initialize reverted",
                tx_hash=tx_hash,
            )

        logger.info(f"RewardManager {contract_address} initialized in block {receipt.get('blockNumber')}")
        return tx_hash


class PayoutStatsReader:
    """Read-only views over RewardManager and coin contracts."""

    def __init__(self, w3: AsyncWeb3):
        self.w3 = w3

    @classmethod
    def from_config(cls, config: ChainConfig) -> 'PayoutStatsReader':
        return cls(create_web3(config))

    async def supporter_share_percent(self, reward_manager: str, user_address: str) -> Decimal:
        contract = self.w3.eth.contract(address=Web3.to_checksum_address(reward_manager), abi=REWARD_MANAGER_ABI)
        shares = await contract.functions.percentageShares(Web3.to_checksum_address(user_address)).call()
        return Decimal(shares) / Decimal(100)

    async def user_earnings(self, reward_manager: str, user_address: str) -> Decimal:
        contract = self.w3.eth.contract(address=Web3.to_checksum_address(reward_manager), abi=REWARD_MANAGER_ABI)
        earnings = await contract.functions.getUserEarnings(Web3.to_checksum_address(user_address)).call()
        return Web3.from_wei(earnings, 'ether')

    async def coin_balance(self, coin_address: str, user_address: str) -> Decimal:
        contract = self.w3.eth.contract(address=Web3.to_checksum_address(coin_address), abi=ERC20_ABI)
        balance = await contract.functions.balanceOf(Web3.to_checksum_address(user_address)).call()
        return Web3.from_wei(balance, 'ether')
