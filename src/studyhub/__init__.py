"""Study Hub: learning challenges, quizzes and gamification API."""
