from datetime import timezone
from dotenv import load_dotenv

load_dotenv()

UTC = timezone.utc
MAX_MESSAGE_LENGTH = 4000
