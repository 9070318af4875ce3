from request_logger.main import main

main()
