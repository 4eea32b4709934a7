from typing import Dict, List, Optional

# id, display name, chart color, subcategories
EXPENSE_CATEGORIES: List[Dict] = [
    {"id": "food_dining", "name": "Food & Dining", "color": "#f97316",
     "subcategories": ["Groceries", "Restaurants", "Coffee", "Fast Food", "Delivery"]},
    {"id": "shopping", "name": "Shopping", "color": "#ec4899",
     "subcategories": ["Clothing", "Electronics", "Home Goods", "Personal Care", "Online Shopping"]},
    {"id": "transportation", "name": "Transportation", "color": "#3b82f6",
     "subcategories": ["Gas", "Public Transit", "Uber/Lyft", "Parking", "Car Maintenance"]},
    {"id": "housing", "name": "Housing", "color": "#8b5cf6",
     "subcategories": ["Rent", "Mortgage", "Insurance", "Repairs", "Furniture"]},
    {"id": "utilities", "name": "Utilities", "color": "#eab308",
     "subcategories": ["Electric", "Gas", "Water", "Internet", "Phone"]},
    {"id": "entertainment", "name": "Entertainment", "color": "#06b6d4",
     "subcategories": ["Movies", "Games", "Streaming", "Events", "Hobbies"]},
    {"id": "health", "name": "Health & Wellness", "color": "#ef4444",
     "subcategories": ["Medical", "Pharmacy", "Gym", "Mental Health", "Vision/Dental"]},
    {"id": "education", "name": "Education", "color": "#10b981",
     "subcategories": ["Tuition", "Books", "Courses", "Supplies", "Student Loans"]},
    {"id": "work", "name": "Work & Business", "color": "#6366f1",
     "subcategories": ["Office Supplies", "Software", "Equipment", "Professional Services"]},
    {"id": "gifts", "name": "Gifts & Donations", "color": "#f43f5e",
     "subcategories": ["Gifts", "Charity", "Donations"]},
    {"id": "travel", "name": "Travel", "color": "#0ea5e9",
     "subcategories": ["Flights", "Hotels", "Vacation", "Travel Insurance"]},
    {"id": "subscriptions", "name": "Subscriptions", "color": "#a855f7",
     "subcategories": ["Streaming", "Software", "Memberships", "News/Media"]},
    {"id": "other", "name": "Other", "color": "#6b7280",
     "subcategories": ["Miscellaneous"]},
]

INCOME_CATEGORIES: List[Dict] = [
    {"id": "salary", "name": "Salary", "color": "#10b981",
     "subcategories": ["Regular Pay", "Bonus", "Commission"]},
    {"id": "freelance", "name": "Freelance", "color": "#3b82f6",
     "subcategories": ["Consulting", "Gig Work", "Side Projects"]},
    {"id": "investments", "name": "Investments", "color": "#8b5cf6",
     "subcategories": ["Dividends", "Interest", "Capital Gains"]},
    {"id": "gifts_income", "name": "Gifts", "color": "#f43f5e",
     "subcategories": ["Family", "Friends", "Other"]},
    {"id": "other_income", "name": "Other Income", "color": "#6b7280",
     "subcategories": ["Refunds", "Reimbursements", "Miscellaneous"]},
]

ALL_CATEGORIES = EXPENSE_CATEGORIES + INCOME_CATEGORIES

GOAL_CATEGORIES = [
    "Emergency Fund",
    "Vacation",
    "Major Purchase",
    "Debt Payoff",
    "Investment",
    "Education",
    "Home",
    "Vehicle",
    "Retirement",
    "Other",
]

DEFAULT_COLOR = "#6b7280"

# Aggregator category keyword -> local expense category. Order matters: first hit wins.
PLAID_CATEGORY_MAP = [
    ("food and drink", "food_dining"),
    ("restaurants", "food_dining"),
    ("coffee shop", "food_dining"),
    ("fast food", "food_dining"),
    ("groceries", "food_dining"),
    ("supermarkets and groceries", "food_dining"),
    ("transportation", "transportation"),
    ("gas stations", "transportation"),
    ("taxi", "transportation"),
    ("ride share", "transportation"),
    ("public transportation", "transportation"),
    ("shops", "shopping"),
    ("clothing", "shopping"),
    ("electronics", "shopping"),
    ("entertainment", "entertainment"),
    ("recreation", "entertainment"),
    ("gyms and fitness centers", "health"),
    ("travel", "travel"),
    ("healthcare", "health"),
    ("pharmacies", "health"),
    ("medical", "health"),
    ("rent", "housing"),
    ("mortgage", "housing"),
    ("utilities", "utilities"),
    ("telecommunication services", "utilities"),
    ("internet", "utilities"),
    ("payment", "other"),
    ("transfer", "other"),
    ("bank fees", "other"),
]


def get_category_by_id(category_id: str) -> Optional[Dict]:
    for cat in ALL_CATEGORIES:
        if cat["id"] == category_id:
            return cat
    return None


def get_category_name(category_id: str) -> str:
    cat = get_category_by_id(category_id)
    return cat["name"] if cat else category_id


def get_category_color(category_id: str) -> str:
    cat = get_category_by_id(category_id)
    return cat["color"] if cat else DEFAULT_COLOR
