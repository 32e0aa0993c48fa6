# sentinelvote/database/seed_data.py

# Name and constituency pools for synthetic voters created at provisioning time.

EMAIL_DOMAIN = "sentinelvote.tech"

CONSTITUENCIES = [
    "Aljunied", "Ang Mo Kio", "Bishan-Toa Payoh", "Chua Chu Kang", "East Coast",
    "Holland-Bukit Timah", "Jalan Besar", "Jurong", "Marine Parade", "Marsiling-Yew Tee",
    "Nee Soon", "Pasir Ris-Punggol", "Sembawang", "Sengkang", "Tampines",
    "Tanjong Pagar", "West Coast", "Bukit Batok", "Hougang", "MacPherson",
    "Mountbatten", "Pioneer", "Potong Pasir", "Punggol West", "Radin Mas", "Yio Chu Kang",
]

FIRST_NAMES = [
    "Aisha", "Alex", "Ananya", "Ben", "Chen", "Daniel", "Devi", "Elaine", "Farid", "Grace",
    "Hana", "Hui Min", "Ibrahim", "Ivan", "Jia Hui", "Kavya", "Kumar", "Li Ting", "Marcus",
    "Mei Ling", "Nadia", "Nicholas", "Nur", "Priya", "Rachel", "Rahul", "Sara", "Siti",
    "Tan", "Vikram", "Wei Jie", "Xin Yi", "Yusof", "Zhi Hao",
]

LAST_NAMES = [
    "Abdullah", "Chan", "Chong", "Goh", "Ho", "Ismail", "Koh", "Kumar", "Lee", "Lim",
    "Menon", "Ng", "Ong", "Pillai", "Rahman", "Seah", "Sim", "Tan", "Teo", "Toh",
    "Wong", "Yap", "Yeo",
]

# Fixed accounts inserted before the synthetic voters. The two voters carry key
# pairs from the start so the anonymity set always meets the minimum ring size.
ADMIN_EMAIL = f"admin@{EMAIL_DOMAIN}"
FIXED_ACCOUNTS = [
    {
        "email": ADMIN_EMAIL,
        "first_name": "Central",
        "last_name": "Authority",
        "constituency": "",
        "is_central_authority": True,
        "issue_keys": False,
        "non_default_password": True,
    },
    {
        "email": f"user1@{EMAIL_DOMAIN}",
        "first_name": "User",
        "last_name": "One",
        "constituency": "Ang Mo Kio",
        "is_central_authority": False,
        "issue_keys": True,
        "non_default_password": True,
    },
    {
        "email": f"user2@{EMAIL_DOMAIN}",
        "first_name": "User",
        "last_name": "Two",
        "constituency": "Ang Mo Kio",
        "is_central_authority": False,
        "issue_keys": True,
        "non_default_password": False,
    },
]


def synthetic_email(n):
    return f"voter{n}@{EMAIL_DOMAIN}"
