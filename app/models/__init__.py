from app.models.user import User, Student, ParentStudentLink, UserRole, SubscriptionTier
from app.models.subscription import SubscriptionPlan, ChildSubscription
from app.models.curriculum import Subject, Topic, Question
from app.models.practice import PracticeSession, SessionQuestion, PracticeAnswer, StudentQuestionProgress
from app.models.gamification import DailyStatus, Mood, Pet, PetRarity, OwnedPet, WeeklyLeaderboardReward

__all__ = [
    "User", "Student", "ParentStudentLink", "UserRole", "SubscriptionTier",
    "SubscriptionPlan", "ChildSubscription", "Subject", "Topic", "Question",
    "PracticeSession", "SessionQuestion", "PracticeAnswer", "StudentQuestionProgress",
    "DailyStatus", "Mood", "Pet", "PetRarity", "OwnedPet", "WeeklyLeaderboardReward"
]
