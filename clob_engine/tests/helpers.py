"""Shared test constants (well-known development keys, never funded)."""

import base64

# First default account of the Hardhat/Anvil development mnemonic
TEST_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
TEST_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"

# Second default account, used as a proxy/safe funder
FUNDER_ADDRESS = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"

TOKEN_ID = "71321045679252212594626385532706912750332728571942532289631379312455583992563"

TEST_API_KEY = "00000000-1111-2222-3333-444444444444"
TEST_API_SECRET = base64.urlsafe_b64encode(b"clob-engine-test-secret-32bytes!").decode()
TEST_API_PASSPHRASE = "test-passphrase-value"
