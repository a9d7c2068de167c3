# Importa a Base declarativa e todos os modelos, para que create_all
# enxergue todas as tabelas antes de iniciar o banco.
from ventfreely.db.base_class import Base

from ventfreely.db.models.subscription import Subscription, WebhookEvent
from ventfreely.db.models.reflection import DailyReflection, WeeklyReport
from ventfreely.db.models.conversation import Conversation, ConversationMessage
from ventfreely.db.models.profile import Profile, UserMemory
