import enum

class UserStatus(str, enum.Enum):
    offline = "offline"
    online = "online"
