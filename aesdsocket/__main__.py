from aesdsocket.main import main

main()
