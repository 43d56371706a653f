"""
Seed records for the default knowledge base.

Large US issuers plus the asset managers and banks most often mentioned in
financial news. Tickers are not repeated as aliases; the ticker index covers
them.
"""

DEFAULT_ORGANIZATIONS: tuple[dict, ...] = (
    {
        "id": "apple",
        "name": "Apple Inc.",
        "aliases": ["Apple", "Apple Computer", "Apple Computer Inc."],
        "ticker": "AAPL",
        "exchange": "NASDAQ",
        "industry": "Technology",
        "org_type": "corporation",
        "previous_names": ["Apple Computer Inc."],
    },
    {
        "id": "microsoft",
        "name": "Microsoft Corporation",
        "aliases": ["Microsoft", "Microsoft Corp."],
        "ticker": "MSFT",
        "exchange": "NASDAQ",
        "industry": "Technology",
        "org_type": "corporation",
    },
    {
        "id": "alphabet",
        "name": "Alphabet Inc.",
        "aliases": ["Alphabet", "Google", "Google Inc."],
        "ticker": "GOOGL",
        "exchange": "NASDAQ",
        "industry": "Technology",
        "org_type": "corporation",
    },
    {
        "id": "amazon",
        "name": "Amazon.com Inc.",
        "aliases": ["Amazon", "Amazon.com"],
        "ticker": "AMZN",
        "exchange": "NASDAQ",
        "industry": "Retail",
        "org_type": "corporation",
    },
    {
        "id": "meta",
        "name": "Meta Platforms Inc.",
        "aliases": ["Meta", "Facebook", "Facebook Inc."],
        "ticker": "META",
        "exchange": "NASDAQ",
        "industry": "Technology",
        "org_type": "corporation",
        "previous_names": ["Facebook Inc."],
    },
    {
        "id": "berkshire",
        "name": "Berkshire Hathaway Inc.",
        "aliases": ["Berkshire Hathaway", "Berkshire"],
        "ticker": "BRK.A",
        "exchange": "NYSE",
        "industry": "Finance",
        "org_type": "corporation",
    },
    {
        "id": "jpmorgan",
        "name": "JPMorgan Chase & Co.",
        "aliases": ["JPMorgan", "JP Morgan", "JPMorgan Chase", "Chase"],
        "ticker": "JPM",
        "exchange": "NYSE",
        "industry": "Finance",
        "org_type": "corporation",
    },
    {
        "id": "walmart",
        "name": "Walmart Inc.",
        "aliases": ["Walmart", "Wal-Mart", "Wal-Mart Stores"],
        "ticker": "WMT",
        "exchange": "NYSE",
        "industry": "Retail",
        "org_type": "corporation",
        "previous_names": ["Wal-Mart Stores Inc."],
    },
    {
        "id": "tesla",
        "name": "Tesla Inc.",
        "aliases": ["Tesla", "Tesla Motors"],
        "ticker": "TSLA",
        "exchange": "NASDAQ",
        "industry": "Automotive",
        "org_type": "corporation",
        "previous_names": ["Tesla Motors Inc."],
    },
    {
        "id": "nvidia",
        "name": "NVIDIA Corporation",
        "aliases": ["NVIDIA", "Nvidia"],
        "ticker": "NVDA",
        "exchange": "NASDAQ",
        "industry": "Technology",
        "org_type": "corporation",
    },
    {
        "id": "blackrock",
        "name": "BlackRock Inc.",
        "aliases": ["BlackRock", "Blackrock"],
        "ticker": "BLK",
        "exchange": "NYSE",
        "industry": "Finance",
        "org_type": "corporation",
    },
    {
        "id": "vanguard",
        "name": "The Vanguard Group",
        "aliases": ["Vanguard", "Vanguard Group"],
        "industry": "Finance",
        "org_type": "corporation",
    },
    {
        "id": "state_street",
        "name": "State Street Corporation",
        "aliases": ["State Street", "State Street Global Advisors"],
        "ticker": "STT",
        "exchange": "NYSE",
        "industry": "Finance",
        "org_type": "corporation",
    },
    {
        "id": "fidelity",
        "name": "Fidelity Investments",
        "aliases": ["Fidelity", "FMR LLC"],
        "industry": "Finance",
        "org_type": "limited_liability_company",
    },
    {
        "id": "bank_of_america",
        "name": "Bank of America Corporation",
        "aliases": ["Bank of America", "BofA"],
        "ticker": "BAC",
        "exchange": "NYSE",
        "industry": "Finance",
        "org_type": "corporation",
    },
    {
        "id": "wells_fargo",
        "name": "Wells Fargo & Company",
        "aliases": ["Wells Fargo"],
        "ticker": "WFC",
        "exchange": "NYSE",
        "industry": "Finance",
        "org_type": "corporation",
    },
    {
        "id": "goldman_sachs",
        "name": "The Goldman Sachs Group Inc.",
        "aliases": ["Goldman Sachs", "Goldman"],
        "ticker": "GS",
        "exchange": "NYSE",
        "industry": "Finance",
        "org_type": "corporation",
    },
    {
        "id": "morgan_stanley",
        "name": "Morgan Stanley",
        "aliases": [],
        "ticker": "MS",
        "exchange": "NYSE",
        "industry": "Finance",
        "org_type": "corporation",
    },
    {
        "id": "oracle",
        "name": "Oracle Corporation",
        "aliases": ["Oracle", "Oracle Corp."],
        "ticker": "ORCL",
        "exchange": "NYSE",
        "industry": "Technology",
        "org_type": "corporation",
    },
    {
        "id": "target",
        "name": "Target Corporation",
        "aliases": ["Target", "Target Corp."],
        "ticker": "TGT",
        "exchange": "NYSE",
        "industry": "Retail",
        "org_type": "corporation",
    },
    {
        "id": "ibm",
        "name": "International Business Machines Corporation",
        "aliases": ["IBM", "Big Blue"],
        "ticker": "IBM",
        "exchange": "NYSE",
        "industry": "Technology",
        "org_type": "corporation",
    },
)
