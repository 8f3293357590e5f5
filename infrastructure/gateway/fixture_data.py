from datetime import datetime, timedelta
from typing import Dict, Any, List


def _ago(**kwargs) -> str:
    return (datetime.now() - timedelta(**kwargs)).isoformat()


def default_tickets() -> List[Dict[str, Any]]:
    return [
        {
            "_id": "1",
            "title": "Leaking Faucet",
            "description": "The kitchen faucet is leaking and needs repair",
            "status": "pending",
            "priority": "medium",
            "createdAt": _ago(days=3),
            "location": "Kitchen",
            "category": "plumbing",
        },
        {
            "_id": "2",
            "title": "Broken Window",
            "description": "The window in the living room is cracked and needs to be replaced",
            "status": "in-progress",
            "priority": "high",
            "createdAt": _ago(days=1),
            "location": "Living Room",
            "category": "structural",
        },
        {
            "_id": "3",
            "title": "AC Not Working",
            "description": "The air conditioner is not cooling properly",
            "status": "completed",
            "priority": "high",
            "createdAt": _ago(days=7),
            "location": "Entire Unit",
            "category": "hvac",
        },
    ]


def default_users() -> List[Dict[str, Any]]:
    return [
        {
            "email": "admin@example.com",
            "password": "admin123",
            "id": "admin-1",
            "name": "Admin User",
            "role": "admin",
            "avatar": "https://randomuser.me/api/portraits/men/1.jpg",
        },
        {
            "email": "tenant@example.com",
            "password": "tenant123",
            "id": "tenant-1",
            "name": "Tenant User",
            "role": "tenant",
            "avatar": "https://randomuser.me/api/portraits/women/2.jpg",
        },
        {
            "email": "owner@example.com",
            "password": "owner123",
            "id": "owner-1",
            "name": "Property Owner",
            "role": "owner",
            "avatar": "https://randomuser.me/api/portraits/men/3.jpg",
        },
    ]


def default_contacts() -> List[Dict[str, Any]]:
    return [
        {
            "id": "contact-1",
            "name": "John Smith",
            "role": "Tenant",
            "isOnline": True,
            "lastMessage": "When will the maintenance be finished?",
            "lastMessageTime": _ago(minutes=15),
            "unread": 1,
        },
        {
            "id": "contact-2",
            "name": "Sarah Johnson",
            "role": "Property Owner",
            "isOnline": False,
            "lastMessage": "Please send me the latest reports",
            "lastMessageTime": _ago(days=1),
            "unread": 0,
        },
        {
            "id": "ai-assistant",
            "name": "Property Assistant",
            "isAI": True,
            "isOnline": True,
            "specialty": "property management",
            "lastMessage": "How can I help you today?",
            "lastMessageTime": _ago(hours=2),
            "unread": 0,
        },
    ]


def default_messages() -> Dict[str, List[Dict[str, Any]]]:
    return {
        "contact-1": [
            {
                "id": "msg-1-1",
                "contactId": "contact-1",
                "senderId": "contact-1",
                "text": "Hello, I have a question about my apartment",
                "timestamp": _ago(hours=1),
                "status": "delivered",
            },
            {
                "id": "msg-1-2",
                "contactId": "contact-1",
                "senderId": "currentUser",
                "text": "Of course, how can I help you?",
                "timestamp": _ago(minutes=50),
                "status": "delivered",
            },
        ],
        "contact-2": [
            {
                "id": "msg-2-1",
                "contactId": "contact-2",
                "senderId": "currentUser",
                "text": "Hi Sarah, I've prepared the monthly reports",
                "timestamp": _ago(days=1),
                "status": "read",
            },
        ],
        "ai-assistant": [
            {
                "id": "msg-3-1",
                "contactId": "ai-assistant",
                "senderId": "ai-assistant",
                "text": "Hello! I'm your property management assistant. How can I help you today?",
                "timestamp": _ago(hours=2),
                "status": "read",
                "isAI": True,
            },
        ],
    }
