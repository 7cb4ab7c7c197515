"""Contract ABIs for the crowdfunding registry and campaign contracts."""

_CAMPAIGN_SUMMARY_TUPLE = {
    "internalType": "struct CrowdfundingManager.Campaign[]",
    "name": "",
    "type": "tuple[]",
    "components": [
        {"internalType": "address", "name": "campaignAddress", "type": "address"},
        {"internalType": "address", "name": "owner", "type": "address"},
        {"internalType": "string", "name": "name", "type": "string"},
        {"internalType": "uint256", "name": "creationTime", "type": "uint256"},
    ],
}

_TIER_TUPLE = {
    "internalType": "struct Crowdfunding.Tier[]",
    "name": "",
    "type": "tuple[]",
    "components": [
        {"internalType": "string", "name": "name", "type": "string"},
        {"internalType": "uint256", "name": "amount", "type": "uint256"},
        {"internalType": "uint256", "name": "backers", "type": "uint256"},
    ],
}


def _view(name: str, output_type: str) -> dict:
    return {
        "inputs": [],
        "name": name,
        "outputs": [{"internalType": output_type, "name": "", "type": output_type}],
        "stateMutability": "view",
        "type": "function",
    }


CrowdfundingManager_abi = [
    {
        "inputs": [
            {"internalType": "string", "name": "_name", "type": "string"},
            {"internalType": "string", "name": "_description", "type": "string"},
            {"internalType": "uint256", "name": "_goal", "type": "uint256"},
            {"internalType": "uint256", "name": "_durationInDays", "type": "uint256"},
        ],
        "name": "createCampaign",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "address", "name": "_user", "type": "address"}],
        "name": "getUserCampaigns",
        "outputs": [_CAMPAIGN_SUMMARY_TUPLE],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "getAllCampaigns",
        "outputs": [_CAMPAIGN_SUMMARY_TUPLE],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "togglePause",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    _view("paused", "bool"),
]

Crowdfunding_abi = [
    _view("name", "string"),
    _view("description", "string"),
    _view("goal", "uint256"),
    _view("deadline", "uint256"),
    _view("owner", "address"),
    _view("getContractBalance", "uint256"),
    _view("getCampaignStatus", "uint8"),
    {
        "inputs": [],
        "name": "getTiers",
        "outputs": [_TIER_TUPLE],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"internalType": "string", "name": "_name", "type": "string"},
            {"internalType": "uint256", "name": "_amount", "type": "uint256"},
        ],
        "name": "addTier",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "uint256", "name": "_index", "type": "uint256"}],
        "name": "removeTier",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "uint256", "name": "_tierIndex", "type": "uint256"}],
        "name": "fund",
        "outputs": [],
        "stateMutability": "payable",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "withdraw",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]
